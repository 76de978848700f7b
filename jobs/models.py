import logging

from django.conf import settings
from django.core.paginator import Paginator
from django.db import DatabaseError, models, transaction
from django.db.models.expressions import RawSQL

from . import states, transcoder
from .errors import CancelNotificationError, JobPersistenceError
from .filters import apply_search
from .states import State
from .utils import parse_arguments

logger = logging.getLogger(__name__)

DEFAULT_SORT = "created_at"
DEFAULT_DIRECTION = "desc"


class Preset(models.Model):
    name = models.CharField(max_length=255, unique=True)
    parameters = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "presets"

    def __str__(self):
        return self.name


class Host(models.Model):
    """A transcoder worker."""
    name = models.CharField(max_length=255)
    url = models.URLField(max_length=512)
    available = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "hosts"

    def __str__(self):
        return self.name


class JobQuerySet(models.QuerySet):
    def in_state(self, state):
        return self.filter(state=state)

    def finished(self):
        return self.filter(state__in=states.FINISHED_STATES)

    def unfinished(self):
        return self.exclude(state__in=states.FINISHED_STATES)

    def needs_update(self):
        return self.filter(state__in=states.NEEDS_UPDATE_STATES)

    def search(self, query, now=None):
        return apply_search(self, query, now=now)

    def order_by_clause(self, clause: str):
        """
        Order by a raw "<table>.<column> <direction>" clause.

        The column goes into the SQL unchecked, so callers must not pass
        untrusted input without a whitelist.
        The direction is read as ascending only when it is "asc" (any case);
        anything else orders descending.
        """
        column, _, direction = clause.partition(" ")
        expression = RawSQL(column, ())
        if direction.strip().lower() == "asc":
            return self.order_by(expression.asc())
        return self.order_by(expression.desc())

    def recents(self, query=None, sort=None, direction=None, page=None, per_page=None):
        """Search, order and paginate jobs. Returns a django Page."""
        qs = self.search(query) if query else self.all()
        qs = qs.select_related("preset").order_by_clause(Job.ordering_clause(sort, direction))
        paginator = Paginator(qs, per_page or settings.JOBS_PER_PAGE)
        return paginator.get_page(page)


class JobManager(models.Manager.from_queryset(JobQuerySet)):
    def from_api(self, options, defaults=None):
        """
        Build a job from an API submission and schedule it.

        Returns the job either way; check `job.persisted` (and `job.errors`)
        to tell a rejected submission from a created one. Raises
        DispatchError if the transcoder refuses the job, in which case
        nothing is saved.
        """
        defaults = defaults or {}
        job = self.model(
            source_file=options.get("input") or options.get("source") or "",
            destination_file=options.get("output") or options.get("destination") or "",
            arguments=parse_arguments(options.get("arguments")),
        )

        errors = {}
        priority = options.get("priority")
        if priority in (None, ""):
            priority = defaults.get("priority", settings.JOB_DEFAULT_PRIORITY)
        try:
            job.priority = int(priority)
        except (TypeError, ValueError):
            errors["priority"] = "must be an integer"

        preset_name = options.get("preset")
        preset = Preset.objects.filter(name=preset_name).first() if preset_name else None
        if preset is not None:
            job.preset = preset
        else:
            errors["preset"] = f"unknown preset: {preset_name!r}" if preset_name else "is required"
        if not job.source_file:
            errors["input"] = "is required"
        if not job.destination_file:
            errors["output"] = "is required"

        job.errors = errors
        if errors:
            logger.info("Rejected job submission: %s", errors)
            return job

        callback_url = defaults.get("callback_url")
        with transaction.atomic():
            try:
                job.save()
                if callback_url is not None:
                    job.callback_url = callback_url(job)
                    job.save(update_fields=["callback_url"])
            except DatabaseError as e:
                logger.error("Could not save submitted job: %s", e)
                raise JobPersistenceError(job.pk, str(e)) from e
            job.enter(states.INITIAL_STATE)
        return job

    def show(self, pk):
        return (
            self.select_related("host", "preset")
            .prefetch_related("state_changes__deliveries__notification")
            .get(pk=pk)
        )


class Job(models.Model):
    State = State

    source_file = models.CharField(max_length=1024)
    destination_file = models.CharField(max_length=1024)
    preset = models.ForeignKey(Preset, on_delete=models.PROTECT, related_name="jobs")
    priority = models.IntegerField(default=0)
    arguments = models.JSONField(default=dict, blank=True)  # {"key": "value"}
    callback_url = models.CharField(max_length=1024, blank=True, default="")

    state = models.CharField(max_length=16, choices=State.choices, default=states.INITIAL_STATE, db_index=True)
    # host_id is whatever the worker reports, known Host or not
    host = models.ForeignKey(
        Host, null=True, blank=True, on_delete=models.DO_NOTHING, db_constraint=False, related_name="jobs"
    )
    remote_job_id = models.CharField(max_length=255, null=True, blank=True)
    transcoding_started_at = models.DateTimeField(null=True, blank=True)
    progress = models.FloatField(null=True, blank=True)  # 0.0..1.0
    duration = models.FloatField(null=True, blank=True)  # seconds
    filesize = models.BigIntegerField(null=True, blank=True)
    message = models.TextField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = JobManager()

    class Meta:
        db_table = "jobs"

    def __str__(self):
        return f"Job {self.pk} ({self.state})"

    @property
    def persisted(self) -> bool:
        return self.pk is not None and not self._state.adding

    @property
    def finished(self) -> bool:
        return self.state in states.FINISHED_STATES

    @property
    def unfinished(self) -> bool:
        return not self.finished

    @property
    def needs_update(self) -> bool:
        return self.state in states.NEEDS_UPDATE_STATES

    @staticmethod
    def ordering_clause(sort=None, direction=None) -> str:
        return f"{Job._meta.db_table}.{sort or DEFAULT_SORT} {direction or DEFAULT_DIRECTION}"

    def enter(self, state, params=None):
        return states.enter(self, state, params)

    def remove_job_from_transcoder(self) -> bool:
        try:
            transcoder.remove_job(self)
        except CancelNotificationError as e:
            logger.warning("Could not remove job %s from the transcoder: %s", self.pk, e.reason)
        return True

    def delete(self, *args, **kwargs):
        self.remove_job_from_transcoder()
        return super().delete(*args, **kwargs)


class StateChange(models.Model):
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name="state_changes")
    state = models.CharField(max_length=16, choices=State.choices)
    message = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "state_changes"
        ordering = ["created_at", "id"]


class Notification(models.Model):
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name="notifications")
    kind = models.CharField(max_length=32, default="url")
    value = models.CharField(max_length=1024)  # url or address
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "notifications"


class Delivery(models.Model):
    notification = models.ForeignKey(Notification, on_delete=models.CASCADE, related_name="deliveries")
    state_change = models.ForeignKey(StateChange, on_delete=models.CASCADE, related_name="deliveries")
    state = models.CharField(max_length=32)
    delivered_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "deliveries"
