"""Test doubles for genbatch tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from genbatch.core.batch.models import JobSpec, JobStatus, ProviderName
from genbatch.integrations.providers.base import ProviderGateway, WebhookEvent


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeGateway(ProviderGateway):
    """Scripted gateway: submissions pop results, statuses are looked up by job id."""

    def __init__(
        self,
        name: ProviderName = ProviderName.WAVESPEED,
        submit_results: Optional[List[Any]] = None,
        statuses: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(api_key="test-key", model="test-model", public_base_url="https://hooks.test")
        self.name = name
        self.submit_results = list(submit_results or [])
        self.statuses = dict(statuses or {})
        self.submitted: List[JobSpec] = []
        self.checked: List[str] = []

    def auth_headers(self) -> Dict[str, str]:
        return {}

    async def submit(self, job: JobSpec) -> str:
        self.submitted.append(job)
        result = self.submit_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def check_status(self, job_id: str) -> JobStatus:
        self.checked.append(job_id)
        status = self.statuses.get(job_id, JobStatus.pending())
        if isinstance(status, Exception):
            raise status
        return status

    def parse_webhook(self, payload: Dict[str, Any]) -> Optional[WebhookEvent]:
        if "url" in payload:
            return WebhookEvent(payload["id"], JobStatus.completed(payload["url"]))
        if "error" in payload:
            return WebhookEvent(payload["id"], JobStatus.failed(payload["error"]))
        return None

