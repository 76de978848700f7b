"""
Job-specific error types.

All errors inherit from JobError for easy catching. Submission validation
failures are not raised; they are reported on the unsaved job instead.
"""


class JobError(Exception):
    """Base exception for all job-related failures."""
    pass


class InvalidStateError(JobError):
    """Raised when asked to enter a state that does not exist."""

    def __init__(self, state):
        self.state = state
        super().__init__(f"Unknown job state: {state!r}")


class JobPersistenceError(JobError):
    """Raised when a job update cannot be written to the database."""

    def __init__(self, job_id, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Could not persist job {job_id}: {reason}")


class DispatchError(JobError):
    """Raised when the transcoder rejects or cannot receive a job."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Transcoder dispatch failed: {reason}")


class CancelNotificationError(JobError):
    """Raised when the transcoder cannot be told to drop a job."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Transcoder removal failed: {reason}")
