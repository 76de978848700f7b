"""
HTTP client for the external transcoder's job API.

Both calls are bounded by settings.TRANSCODER_TIMEOUT so a slow worker
cannot hang the request that triggered them.
"""

import logging

import requests
from django.conf import settings

from .errors import CancelNotificationError, DispatchError

logger = logging.getLogger(__name__)


def schedule_job(payload: dict) -> dict:
    """
    Hand a job to the transcoder intake. Returns the decoded response body
    (empty dict when the transcoder answers without one).
    """
    url = f"{settings.TRANSCODER_URL}/jobs"
    try:
        resp = requests.post(url, json=payload, timeout=settings.TRANSCODER_TIMEOUT)
        resp.raise_for_status()
    except requests.exceptions.Timeout as e:
        raise DispatchError(f"request to {url} timed out") from e
    except requests.exceptions.RequestException as e:
        raise DispatchError(str(e)) from e

    if not resp.content:
        return {}
    try:
        return resp.json()
    except ValueError:
        return {}


def _host_url(job) -> str:
    # host_id is reported by workers and may not match a known Host
    from .models import Host

    host = Host.objects.filter(pk=job.host_id).first() if job.host_id else None
    if host and host.url:
        return host.url.rstrip("/")
    return settings.TRANSCODER_URL


def remove_job(job) -> bool:
    """
    Ask the transcoder to drop the remote copy of a job.
    Jobs that never reached a worker have nothing to remove.
    """
    if not job.remote_job_id:
        return False

    url = f"{_host_url(job)}/jobs/{job.remote_job_id}"
    try:
        resp = requests.delete(url, timeout=settings.TRANSCODER_TIMEOUT)
        resp.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise CancelNotificationError(str(e)) from e

    logger.info("Removed remote job %s for job %s", job.remote_job_id, job.pk)
    return True
