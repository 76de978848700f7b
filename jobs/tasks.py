import logging

from celery import shared_task

from .models import Job

logger = logging.getLogger(__name__)


@shared_task
def purge_failed_jobs() -> int:
    """Delete every failed job, telling the transcoder about each one."""
    count = 0
    for job in list(Job.objects.in_state(Job.State.FAILED)):
        job.delete()
        count += 1
    logger.info("Purged %d failed jobs", count)
    return count
