"""Batch models for genbatch.

Type-safe models for batch records, job status and submission results.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from genbatch.core.errors import InvalidProvider


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class ProviderName(str, Enum):
    """Image generation providers a batch can be submitted to."""

    WAVESPEED = "WaveSpeed"
    FAL = "Fal"

    @property
    def slug(self) -> str:
        """Lowercase name used in webhook paths."""
        return self.value.lower()

    @classmethod
    def parse(cls, value: Any) -> "ProviderName":
        """Resolve a provider from its name or slug, case-insensitively.

        Raises:
            InvalidProvider: If the value matches no provider
        """
        if isinstance(value, cls):
            return value

        text = str(value or "").strip().lower()
        for provider in cls:
            if text == provider.slug:
                return provider

        raise InvalidProvider(str(value))


class BatchStatus(str, Enum):
    """Batch lifecycle states.

    - PENDING: record created, submissions not resolved yet
    - PROCESSING: at least one job accepted, waiting for results
    - COMPLETED: every submitted job produced an output
    - FAILED: no job accepted, or a job failed under the fail-batch policy
    - COMPLETED_WITH_ERRORS: all jobs accounted for, some failed (tolerate policy)
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {BatchStatus.COMPLETED, BatchStatus.FAILED, BatchStatus.COMPLETED_WITH_ERRORS}
)


class JobState(str, Enum):
    """Normalized state of a single provider job."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class JobStatus:
    """Provider-agnostic job status, produced at the gateway boundary."""

    state: JobState
    output_url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def pending(cls) -> "JobStatus":
        return cls(JobState.PENDING)

    @classmethod
    def completed(cls, output_url: str) -> "JobStatus":
        return cls(JobState.COMPLETED, output_url=output_url)

    @classmethod
    def failed(cls, error: str) -> "JobStatus":
        return cls(JobState.FAILED, error=error)

    @property
    def is_terminal(self) -> bool:
        return self.state is not JobState.PENDING


@dataclass
class JobAssets:
    """Input images attached to every job of a batch."""

    subject_url: Optional[str] = None
    reference_urls: List[str] = field(default_factory=list)


@dataclass
class JobSpec:
    """Everything a gateway needs to submit one job."""

    prompt: str
    width: int
    height: int
    record_id: str
    run_id: str
    assets: JobAssets = field(default_factory=JobAssets)
    # Provider-specific prepared inputs (e.g. inlined data URLs)
    prepared: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SubmissionSummary:
    """Result of fanning out one batch."""

    record_id: str
    run_id: str
    submitted: int
    failed: int
    status: BatchStatus
    failures: List[str] = field(default_factory=list)


@dataclass
class BatchRecord:
    """One batch of jobs, as stored in the record store."""

    record_id: str
    provider: ProviderName
    prompt: str
    status: BatchStatus = BatchStatus.PENDING
    run_id: str = ""
    request_ids: List[str] = field(default_factory=list)
    seen_ids: List[str] = field(default_factory=list)
    # {"url": ..., "job_id": ...} in observation order
    outputs: List[Dict[str, str]] = field(default_factory=list)
    failed_submissions: List[str] = field(default_factory=list)
    failed_job_ids: List[str] = field(default_factory=list)
    note: str = ""
    model: Optional[str] = None
    output_urls: str = ""
    subject_url: Optional[str] = None
    reference_urls: List[str] = field(default_factory=list)
    width: int = 1024
    height: int = 1024
    created_at: Optional[datetime] = None
    last_update: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def pending_job_ids(self) -> List[str]:
        """Submitted jobs with no observed outcome yet, in submission order."""
        accounted = set(self.seen_ids) | set(self.failed_job_ids)
        return [job_id for job_id in self.request_ids if job_id not in accounted]

    def is_fully_covered(self) -> bool:
        """True when every submitted job has produced an output."""
        return bool(self.request_ids) and set(self.seen_ids) >= set(self.request_ids)

    def invariant_violations(self) -> List[str]:
        """List every broken batch invariant (empty when the record is consistent)."""
        violations = []
        if not set(self.seen_ids) <= set(self.request_ids):
            violations.append("seen_ids not a subset of request_ids")
        if len(self.outputs) != len(self.seen_ids):
            violations.append("outputs and seen_ids differ in length")
        if (self.status is BatchStatus.COMPLETED) != self.is_fully_covered():
            violations.append("completed status does not match coverage")
        if len(set(self.seen_ids)) != len(self.seen_ids):
            violations.append("duplicate id in seen_ids")
        output_ids = [output.get("job_id") for output in self.outputs]
        if len(set(output_ids)) != len(output_ids):
            violations.append("duplicate job in outputs")
        return violations

    def to_fields(self) -> Dict[str, Any]:
        """Serialize to store fields (everything except the record id)."""
        return serialize_fields(
            {
                "provider": self.provider,
                "prompt": self.prompt,
                "status": self.status,
                "run_id": self.run_id,
                "request_ids": self.request_ids,
                "seen_ids": self.seen_ids,
                "outputs": self.outputs,
                "failed_submissions": self.failed_submissions,
                "failed_job_ids": self.failed_job_ids,
                "note": self.note,
                "model": self.model,
                "output_urls": self.output_urls,
                "subject_url": self.subject_url,
                "reference_urls": self.reference_urls,
                "width": self.width,
                "height": self.height,
                "created_at": self.created_at,
                "last_update": self.last_update,
                "completed_at": self.completed_at,
            }
        )

    @classmethod
    def from_row(cls, record_id: str, row: Dict[str, Any]) -> "BatchRecord":
        """Build a record from a store row.

        Args:
            record_id: Store identifier of the row
            row: Raw field mapping as returned by the store

        Returns:
            BatchRecord instance
        """
        return cls(
            record_id=str(record_id),
            provider=ProviderName.parse(row.get("provider")),
            prompt=row.get("prompt") or "",
            status=BatchStatus(row.get("status") or BatchStatus.PENDING.value),
            run_id=row.get("run_id") or "",
            request_ids=_as_list(row.get("request_ids")),
            seen_ids=_as_list(row.get("seen_ids")),
            outputs=list(row.get("outputs") or []),
            failed_submissions=_as_list(row.get("failed_submissions")),
            failed_job_ids=_as_list(row.get("failed_job_ids")),
            note=row.get("note") or "",
            model=row.get("model"),
            output_urls=row.get("output_urls") or "",
            subject_url=row.get("subject_url"),
            reference_urls=_as_list(row.get("reference_urls")),
            width=int(row.get("width") or 1024),
            height=int(row.get("height") or 1024),
            created_at=parse_timestamp(row.get("created_at")),
            last_update=parse_timestamp(row.get("last_update")),
            completed_at=parse_timestamp(row.get("completed_at")),
        )


def serialize_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Convert enums and datetimes into JSON-friendly store values."""
    serialized = {}
    for key, value in fields.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, list):
            value = list(value)
        serialized[key] = value
    return serialized


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp from the store; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _as_list(value: Any) -> List[str]:
    """Accept either a JSON list or a comma-separated string."""
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(item) for item in value]
