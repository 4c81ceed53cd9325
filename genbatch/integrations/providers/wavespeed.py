"""WaveSpeed gateway for genbatch."""

import asyncio
from typing import Any, Dict, Iterable, Optional
from urllib.parse import quote

from genbatch.core.batch.models import JobAssets, JobSpec, JobStatus, ProviderName
from genbatch.core.errors import SubmissionFailure
from genbatch.core.logging import logger
from genbatch.integrations.providers.base import ProviderGateway, WebhookEvent, url_to_data_url

API_BASE = "https://api.wavespeed.ai/api/v3"


def _first_http_url(outputs: Any) -> Optional[str]:
    if not isinstance(outputs, Iterable) or isinstance(outputs, (str, bytes)):
        return None
    return next((s for s in outputs if isinstance(s, str) and s.startswith("http")), None)


class WaveSpeedGateway(ProviderGateway):
    """WaveSpeed API client.

    WaveSpeed wants input images inline, so assets are fetched and base64
    encoded once per batch before fan-out.
    """

    name = ProviderName.WAVESPEED

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def prepare_assets(self, assets: JobAssets) -> Dict[str, Any]:
        urls = [assets.subject_url, *assets.reference_urls]
        inlined = await asyncio.gather(*[url_to_data_url(self.client, url) for url in urls])
        return {"images": [image for image in inlined if image]}

    async def submit(self, job: JobSpec) -> str:
        webhook = self.webhook_url(job.record_id, job.run_id)
        url = f"{API_BASE}/{self.model}?webhook={quote(webhook, safe='')}"
        payload = {
            "prompt": job.prompt,
            "model": self.model,
            "width": job.width,
            "height": job.height,
            "images": job.prepared.get("images", []),
        }

        data = await self._request("POST", url, json=payload)
        body = data.get("data") or {}
        job_id = body.get("id") or body.get("request_id")
        if not job_id:
            raise SubmissionFailure(f"WaveSpeed response carried no job id: {str(data)[:200]}")

        logger.info("job_submitted", provider=self.name.value, job_id=job_id, record_id=job.record_id)
        return str(job_id)

    async def check_status(self, job_id: str) -> JobStatus:
        data = await self._request("GET", f"{API_BASE}/tasks/{job_id}")
        # Some responses wrap the task in "data"
        task = data.get("data") if isinstance(data.get("data"), dict) else data
        return self._normalize(task)

    def parse_webhook(self, payload: Dict[str, Any]) -> Optional[WebhookEvent]:
        job_id = payload.get("id") or payload.get("requestId") or payload.get("request_id")
        if not job_id:
            return None
        status = self._normalize(payload)
        # Callbacks may omit status; an http output is enough to count as done
        output_url = _first_http_url(payload.get("outputs"))
        if "status" not in payload and output_url:
            status = JobStatus.completed(output_url)
        if not status.is_terminal:
            return None
        return WebhookEvent(job_id=str(job_id), status=status)

    @staticmethod
    def _normalize(task: Dict[str, Any]) -> JobStatus:
        output_url = _first_http_url(task.get("outputs"))
        if task.get("status") in ("success", "completed") and output_url:
            return JobStatus.completed(output_url)
        if task.get("status") == "failed" or task.get("error"):
            return JobStatus.failed(str(task.get("error") or "Job failed on WaveSpeed side."))
        return JobStatus.pending()
