from types import SimpleNamespace
from unittest import mock

import pytest

from jobs import transcoder
from jobs.models import Host, Job, Preset


@pytest.fixture
def preset(db):
    return Preset.objects.create(name="h264", parameters={"vcodec": "libx264"})


@pytest.fixture
def host(db):
    return Host.objects.create(name="encoder-1", url="http://encoder-1:8080")


@pytest.fixture
def make_job(preset):
    def make(**fields):
        fields.setdefault("source_file", "/in/movie.mov")
        fields.setdefault("destination_file", "/out/movie.mp4")
        fields.setdefault("preset", preset)
        return Job.objects.create(**fields)
    return make


@pytest.fixture
def remote():
    """Stand-in for the transcoder HTTP API."""
    with mock.patch.object(transcoder, "schedule_job", return_value={}) as schedule, \
            mock.patch.object(transcoder, "remove_job", return_value=True) as remove:
        yield SimpleNamespace(schedule_job=schedule, remove_job=remove)
