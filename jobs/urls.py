from django.urls import path
from .models import Job
from .views import (
    JobDetailView,
    JobListCreateView,
    JobNotificationsView,
    JobsInStateView,
    JobStateChangesView,
    PurgeFailedJobsView,
    RetryJobView,
)

STATE_LISTS = {
    "scheduled": Job.State.SCHEDULED,
    "transcoding": Job.State.TRANSCODING,
    "processing": Job.State.PROCESSING,
    "on_hold": Job.State.ON_HOLD,
    "success": Job.State.SUCCESS,
    "failed": Job.State.FAILED,
}

urlpatterns = [
    path("jobs/", JobListCreateView.as_view(), name="job_list"),
    path("jobs/purge/", PurgeFailedJobsView.as_view(), name="jobs_purge"),
    path("jobs/<int:job_id>/", JobDetailView.as_view(), name="job_detail"),
    path("jobs/<int:job_id>/retry/", RetryJobView.as_view(), name="job_retry"),
    path("jobs/<int:job_id>/state_changes/", JobStateChangesView.as_view(), name="job_state_changes"),
    path("jobs/<int:job_id>/notifications/", JobNotificationsView.as_view(), name="job_notifications"),
] + [
    path(f"jobs/{name}/", JobsInStateView.as_view(state=state), name=f"jobs_{name}")
    for name, state in STATE_LISTS.items()
]
