"""Error taxonomy for genbatch.

Errors local to one job or one record are contained at that scope. Nothing
here is meant to crash the process; callers log and move on.
"""

from typing import Optional


class GenbatchError(Exception):
    """Base class for all genbatch errors."""


class InvalidProvider(GenbatchError, ValueError):
    """Raised when a provider name does not match any known provider."""

    def __init__(self, provider: str):
        super().__init__(f"Unknown provider: {provider!r}")
        self.provider = provider


class SubmissionFailure(GenbatchError):
    """A provider did not accept one job of a batch.

    Recorded on the batch record; the rest of the batch carries on.
    """


class ProviderCommunicationError(GenbatchError):
    """Transient network or API error while talking to a provider."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderTimeoutError(ProviderCommunicationError):
    """A provider call did not answer within its timeout."""


class JobFailure(GenbatchError):
    """A provider reported that a job itself failed."""

    def __init__(self, job_id: str, reason: str):
        super().__init__(f"Job {job_id} failed: {reason}")
        self.job_id = job_id
        self.reason = reason


class StoreError(GenbatchError):
    """The record store could not complete an operation."""


class RecordNotFoundError(StoreError):
    """The requested batch record does not exist."""

    def __init__(self, record_id: str):
        super().__init__(f"Batch record {record_id} not found")
        self.record_id = record_id
