import logging

from . import transcoder

logger = logging.getLogger(__name__)


def dispatch_payload(job) -> dict:
    """Fields the transcoder needs to run a job."""
    return {
        "source_file": job.source_file,
        "destination_file": job.destination_file,
        "preset": job.preset.name if job.preset_id else None,
        "priority": job.priority,
        "arguments": dict(job.arguments or {}),
        "callback_url": job.callback_url,
    }


def schedule_job(job, params=None):
    """
    Entry action for the scheduled state: send the job to the transcoder.
    DispatchError propagates to whoever entered the state.
    """
    payload = dispatch_payload(job)
    logger.info("Dispatching job %s (%s -> %s)", job.pk, job.source_file, job.destination_file)
    return transcoder.schedule_job(payload)
