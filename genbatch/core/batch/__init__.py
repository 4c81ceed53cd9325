"""Batch module for genbatch.

Components:
- BatchCoordinator: creates batch records and fans out submissions
- BatchRecord: type-safe batch record model
- JobStatus: provider-agnostic job status
"""

from genbatch.core.batch.coordinator import BatchCoordinator
from genbatch.core.batch.models import (
    BatchRecord,
    BatchStatus,
    JobAssets,
    JobSpec,
    JobState,
    JobStatus,
    ProviderName,
    SubmissionSummary,
)

__all__ = [
    "BatchCoordinator",
    "BatchRecord",
    "BatchStatus",
    "JobAssets",
    "JobSpec",
    "JobState",
    "JobStatus",
    "ProviderName",
    "SubmissionSummary",
]
