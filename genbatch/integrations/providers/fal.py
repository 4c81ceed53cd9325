"""Fal gateway for genbatch."""

from typing import Any, Dict, Optional
from urllib.parse import quote

from genbatch.core.batch.models import JobSpec, JobStatus, ProviderName
from genbatch.core.errors import SubmissionFailure
from genbatch.core.logging import logger
from genbatch.integrations.providers.base import ProviderGateway, WebhookEvent

API_BASE = "https://api.fal.ai/v1"


def _first_image_url(result: Any) -> Optional[str]:
    if not isinstance(result, dict):
        return None
    images = result.get("images") or []
    if images and isinstance(images[0], dict):
        return images[0].get("url")
    return None


class FalGateway(ProviderGateway):
    """Fal API client. Fal fetches input images itself, so URLs pass through."""

    name = ProviderName.FAL

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Key {self.api_key}"}

    async def submit(self, job: JobSpec) -> str:
        webhook = self.webhook_url(job.record_id, job.run_id)
        url = f"{API_BASE}/models/{self.model}/generate?webhook={quote(webhook, safe='')}"
        payload = {
            "prompt": job.prompt,
            "image_url": job.assets.subject_url or None,
            "width": job.width,
            "height": job.height,
        }

        data = await self._request("POST", url, json=payload)
        job_id = data.get("request_id")
        if not job_id:
            raise SubmissionFailure(f"Fal response carried no request_id: {str(data)[:200]}")

        logger.info("job_submitted", provider=self.name.value, job_id=job_id, record_id=job.record_id)
        return str(job_id)

    async def check_status(self, job_id: str) -> JobStatus:
        data = await self._request("GET", f"{API_BASE}/requests/{job_id}/status")
        output_url = _first_image_url(data.get("result"))
        if data.get("status") == "COMPLETED" and output_url:
            return JobStatus.completed(output_url)
        if data.get("status") == "ERROR" or data.get("error"):
            return JobStatus.failed(str(data.get("error") or "Job failed on Fal side."))
        return JobStatus.pending()

    def parse_webhook(self, payload: Dict[str, Any]) -> Optional[WebhookEvent]:
        job_id = payload.get("request_id")
        if not job_id:
            return None

        output_url = _first_image_url(payload.get("payload")) or _first_image_url(
            payload.get("result")
        )
        if output_url:
            return WebhookEvent(job_id=str(job_id), status=JobStatus.completed(output_url))
        if payload.get("status") == "ERROR" or payload.get("error"):
            reason = str(payload.get("error") or "Job failed on Fal side.")
            return WebhookEvent(job_id=str(job_id), status=JobStatus.failed(reason))
        return None
