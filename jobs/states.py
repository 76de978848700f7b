"""
Job lifecycle.

Any state may be entered from any other: workers re-enter processing after
onhold, and the dashboard can send a failed job back to scheduled. Entering a
state writes the state together with the fields its entry handler derives
from the request params, records a StateChange, and then runs the state's
entry action (only scheduled has one).
"""

import logging

from django.db import DatabaseError, models, transaction
from django.utils import timezone

from . import scheduling
from .errors import DispatchError, InvalidStateError, JobPersistenceError

logger = logging.getLogger(__name__)


class State(models.TextChoices):
    SCHEDULED = "scheduled", "Scheduled"
    TRANSCODING = "transcoding", "Transcoding"
    PROCESSING = "processing", "Processing"
    ON_HOLD = "onhold", "On hold"
    FAILED = "failed", "Failed"
    SUCCESS = "success", "Success"


INITIAL_STATE = State.SCHEDULED
FINISHED_STATES = frozenset({State.SUCCESS, State.FAILED})
NEEDS_UPDATE_STATES = frozenset({State.PROCESSING, State.ON_HOLD})


def _no_updates(job, params) -> dict:
    return {}


def _enter_transcoding(job, params) -> dict:
    return {
        "host_id": params.get("host_id"),
        "remote_job_id": params.get("job_id"),
        "transcoding_started_at": timezone.now(),
    }


def _enter_processing(job, params) -> dict:
    # stored as reported by the worker
    return {
        "progress": params.get("progress"),
        "duration": params.get("duration"),
        "filesize": params.get("filesize"),
    }


def _enter_failed(job, params) -> dict:
    return {"message": params.get("message")}


def _enter_success(job, params) -> dict:
    return {
        "completed_at": timezone.now(),
        "message": params.get("message"),
        "progress": 1.0,
    }


ENTRY_HANDLERS = {
    State.SCHEDULED: _no_updates,
    State.TRANSCODING: _enter_transcoding,
    State.PROCESSING: _enter_processing,
    State.ON_HOLD: _no_updates,
    State.FAILED: _enter_failed,
    State.SUCCESS: _enter_success,
}

# Run after the state is saved; an exception rolls the transition back.
ENTRY_ACTIONS = {
    State.SCHEDULED: scheduling.schedule_job,
}


def coerce_state(value) -> State:
    try:
        return State(value)
    except ValueError:
        raise InvalidStateError(value) from None


def enter(job, state, params=None):
    """
    Move `job` into `state`, applying that state's side effects from `params`.

    Raises InvalidStateError for unknown states, JobPersistenceError when the
    update cannot be saved, and whatever the entry action raises (DispatchError
    for scheduled). Returns the job.
    """
    state = coerce_state(state)
    params = params or {}
    updates = ENTRY_HANDLERS[state](job, params)

    with transaction.atomic():
        job.state = state
        for field, value in updates.items():
            setattr(job, field, value)
        try:
            job.save(update_fields=["state", *updates, "updated_at"])
            job.state_changes.create(state=state, message=params.get("message"))
        except (DatabaseError, TypeError, ValueError) as e:
            # ValueError: a worker value the column cannot hold
            logger.error("Could not move job %s to %s: %s", job.pk, state, e)
            raise JobPersistenceError(job.pk, str(e)) from e

        action = ENTRY_ACTIONS.get(state)
        if action is not None:
            try:
                action(job, params)
            except DispatchError as e:
                logger.error("Job %s could not be dispatched: %s", job.pk, e.reason)
                raise

    logger.info("Job %s entered %s", job.pk, state.value)
    return job
