"""Provider gateways for genbatch.

One gateway per image generation provider, all normalizing to JobStatus.
"""

from typing import Dict, Optional

import httpx

from genbatch.config import config
from genbatch.core.batch.models import ProviderName
from genbatch.integrations.providers.base import ProviderGateway, WebhookEvent, url_to_data_url
from genbatch.integrations.providers.fal import FalGateway
from genbatch.integrations.providers.wavespeed import WaveSpeedGateway


def build_gateways(
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[ProviderName, ProviderGateway]:
    """Build one gateway per provider from environment configuration.

    Args:
        client: Shared httpx client for all gateways

    Returns:
        Mapping of provider → gateway
    """
    timeout = config.provider_timeout_seconds()
    base_url = config.public_base_url()
    return {
        ProviderName.WAVESPEED: WaveSpeedGateway(
            api_key=config.wavespeed_api_key(),
            model=config.wavespeed_model(),
            public_base_url=base_url,
            client=client,
            timeout=timeout,
        ),
        ProviderName.FAL: FalGateway(
            api_key=config.fal_api_token(),
            model=config.fal_model(),
            public_base_url=base_url,
            client=client,
            timeout=timeout,
        ),
    }


__all__ = [
    "ProviderGateway",
    "WebhookEvent",
    "WaveSpeedGateway",
    "FalGateway",
    "build_gateways",
    "url_to_data_url",
]
