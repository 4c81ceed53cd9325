"""Provider gateway interface for genbatch.

Each provider normalizes its own request, status and webhook payload shapes
into JobStatus at this boundary, so the reconciliation core stays
provider-agnostic.
"""

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from genbatch.core.batch.models import JobAssets, JobSpec, JobStatus, ProviderName
from genbatch.core.errors import ProviderCommunicationError, ProviderTimeoutError
from genbatch.core.logging import logger


@dataclass(frozen=True)
class WebhookEvent:
    """A parsed provider webhook: which job, and what happened to it."""

    job_id: str
    status: JobStatus


class ProviderGateway(ABC):
    """Outbound client for one image generation provider."""

    name: ProviderName

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        public_base_url: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        """Initialize gateway.

        Args:
            api_key: Provider credential
            model: Provider model identifier
            public_base_url: Base URL the provider calls back on
            client: Shared httpx client (created on demand if omitted)
            timeout: Seconds before a provider call is abandoned
        """
        self.api_key = api_key
        self.model = model
        self.public_base_url = (public_base_url or "").rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    def webhook_url(self, record_id: str, run_id: str) -> str:
        """Callback address carrying the batch correlation ids."""
        query = urlencode({"record_id": record_id, "run_id": run_id})
        return f"{self.public_base_url}/webhooks/{self.name.slug}?{query}"

    async def prepare_assets(self, assets: JobAssets) -> Dict[str, Any]:
        """Turn batch assets into provider inputs, once per batch."""
        return {}

    @abstractmethod
    def auth_headers(self) -> Dict[str, str]:
        """Authorization headers for this provider."""

    @abstractmethod
    async def submit(self, job: JobSpec) -> str:
        """Submit one job and return the provider job id.

        Raises:
            SubmissionFailure: If the provider did not accept the job
            ProviderCommunicationError: On transport errors
        """

    @abstractmethod
    async def check_status(self, job_id: str) -> JobStatus:
        """Pull the current status of one job.

        Raises:
            ProviderTimeoutError: If the provider did not answer in time
            ProviderCommunicationError: On transport or API errors
        """

    @abstractmethod
    def parse_webhook(self, payload: Dict[str, Any]) -> Optional[WebhookEvent]:
        """Extract the job outcome from a webhook body, or None if there is none."""

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Send one request and decode its JSON body.

        Raises:
            ProviderTimeoutError: On timeout
            ProviderCommunicationError: On transport errors and non-2xx answers
        """
        headers = {**self.auth_headers(), "Content-Type": "application/json"}
        try:
            response = await self.client.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"{self.name.value} request timed out: {url}") from e
        except httpx.HTTPError as e:
            raise ProviderCommunicationError(f"{self.name.value} request failed: {e}") from e

        if response.status_code >= 400:
            raise ProviderCommunicationError(
                f"{self.name.value} HTTP error, status code {response.status_code}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderCommunicationError(f"{self.name.value} returned invalid JSON") from e


async def url_to_data_url(client: httpx.AsyncClient, url: Optional[str]) -> Optional[str]:
    """Download an image and inline it as a base64 data URL.

    Returns None (and logs) when the image cannot be fetched.
    """
    if not url:
        return None

    try:
        response = await client.get(url)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning("asset_fetch_failed", url=url[:80], error=str(e))
        return None

    content_type = response.headers.get("content-type") or "image/png"
    encoded = base64.b64encode(response.content).decode("ascii")
    logger.info("asset_inlined", url=url[:80], size_mb=round(len(response.content) / 1024 / 1024, 2))
    return f"data:{content_type};base64,{encoded}"
