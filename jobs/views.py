from django.urls import reverse
from rest_framework import status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .errors import DispatchError, InvalidStateError, JobPersistenceError
from .models import Delivery, Job, StateChange
from .serializers import (
    DeliverySerializer,
    JobDetailSerializer,
    JobSerializer,
    ListQuerySerializer,
    StateChangeSerializer,
)
from .tasks import purge_failed_jobs


def _params(request) -> dict:
    """Flatten request data (QueryDict or JSON) into a plain dict."""
    data = request.data
    if hasattr(data, "dict"):
        return data.dict()
    return dict(data)


def _job_error_response(exc):
    if isinstance(exc, InvalidStateError):
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, DispatchError):
        return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)
    return Response({"detail": str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)


class JobListCreateView(views.APIView):
    """
    GET: search, order and paginate jobs (?q=&sort=&dir=&page=).
    POST: submit a new job; it is dispatched to the transcoder right away.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        ser = ListQuerySerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        opts = ser.validated_data

        page = Job.objects.recents(
            query=opts.get("q"),
            sort=opts.get("sort") or None,
            direction=opts.get("dir") or None,
            page=opts.get("page"),
        )
        return Response({
            "count": page.paginator.count,
            "num_pages": page.paginator.num_pages,
            "page": page.number,
            "results": JobSerializer(page.object_list, many=True).data,
        })

    def post(self, request):
        def callback_url(job):
            return request.build_absolute_uri(reverse("job_detail", args=[job.pk]))

        try:
            job = Job.objects.from_api(_params(request), {"callback_url": callback_url})
        except (DispatchError, JobPersistenceError) as e:
            return _job_error_response(e)

        if not job.persisted:
            return Response({"errors": job.errors}, status=status.HTTP_422_UNPROCESSABLE_ENTITY)

        headers = {
            "X-State-Changes-Location": request.build_absolute_uri(reverse("job_state_changes", args=[job.pk])),
            "X-Notifications-Location": request.build_absolute_uri(reverse("job_notifications", args=[job.pk])),
        }
        return Response(JobSerializer(job).data, status=status.HTTP_201_CREATED, headers=headers)


class JobDetailView(views.APIView):
    """
    GET: job with its state changes.
    PUT: worker callback; enters params["status"] (or "state") with the request data.
    DELETE: remove the job, notifying the transcoder first.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, job_id):
        try:
            job = Job.objects.show(job_id)
        except Job.DoesNotExist:
            return Response({"detail": "Not found"}, status=404)
        return Response(JobDetailSerializer(job).data)

    def put(self, request, job_id):
        try:
            job = Job.objects.get(pk=job_id)
        except Job.DoesNotExist:
            return Response({"detail": "Not found"}, status=404)

        params = _params(request)
        params["id"] = str(job_id)
        target = params.get("status") or params.get("state")
        try:
            job.enter(target, params)
        except (InvalidStateError, DispatchError, JobPersistenceError) as e:
            return _job_error_response(e)
        return Response(JobSerializer(job).data)

    def delete(self, request, job_id):
        try:
            job = Job.objects.get(pk=job_id)
        except Job.DoesNotExist:
            return Response({"detail": "Not found"}, status=404)
        job.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class RetryJobView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, job_id):
        try:
            job = Job.objects.get(pk=job_id)
        except Job.DoesNotExist:
            return Response({"detail": "Not found"}, status=404)
        try:
            job.enter(Job.State.SCHEDULED)
        except (DispatchError, JobPersistenceError) as e:
            return _job_error_response(e)
        return Response(JobSerializer(job).data)


class JobsInStateView(views.APIView):
    """Lists jobs in one state, most recent first."""
    permission_classes = [AllowAny]
    authentication_classes = []
    state = None

    def get(self, request):
        jobs = Job.objects.in_state(self.state).select_related("preset").order_by("-created_at", "-id")
        return Response(JobSerializer(jobs, many=True).data)


class PurgeFailedJobsView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def delete(self, request):
        purge_failed_jobs()
        return Response(status=status.HTTP_204_NO_CONTENT)


class JobStateChangesView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, job_id):
        if not Job.objects.filter(pk=job_id).exists():
            return Response({"detail": "Not found"}, status=404)
        changes = StateChange.objects.filter(job_id=job_id).prefetch_related("deliveries__notification")
        return Response(StateChangeSerializer(changes, many=True).data)


class JobNotificationsView(views.APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, job_id):
        if not Job.objects.filter(pk=job_id).exists():
            return Response({"detail": "Not found"}, status=404)
        deliveries = (
            Delivery.objects
            .filter(state_change__job_id=job_id)
            .select_related("notification")
            .order_by("created_at")
        )
        return Response(DeliverySerializer(deliveries, many=True).data)
