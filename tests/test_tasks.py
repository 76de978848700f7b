import pytest

from jobs.errors import CancelNotificationError
from jobs.models import Job
from jobs.states import State
from jobs.tasks import purge_failed_jobs

pytestmark = pytest.mark.django_db


def test_purge_failed_jobs(make_job, remote):
    make_job(state=State.FAILED)
    make_job(state=State.FAILED)
    make_job(state=State.PROCESSING)

    assert purge_failed_jobs() == 2
    assert list(Job.objects.values_list("state", flat=True)) == ["processing"]


def test_purge_survives_an_unreachable_transcoder(make_job, remote):
    remote.remove_job.side_effect = CancelNotificationError("timed out")
    make_job(state=State.FAILED)

    assert purge_failed_jobs.apply().get() == 1
    assert not Job.objects.exists()
