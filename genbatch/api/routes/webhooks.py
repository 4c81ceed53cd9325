"""Provider webhook routes for genbatch API.

Providers may retry deliveries freely: once a webhook is correlated to a
batch record it is always acknowledged with 200, whatever the merge outcome.
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from genbatch.api.dependencies import get_engine, get_services
from genbatch.api.services import Services
from genbatch.core.batch.models import ProviderName
from genbatch.core.errors import InvalidProvider
from genbatch.core.logging import logger
from genbatch.core.reconciliation.engine import ReconciliationEngine

router = APIRouter(tags=["Webhooks"])


@router.post("/webhooks/{provider}")
async def provider_webhook(
    provider: str,
    request: Request,
    record_id: Optional[str] = Query(None),
    run_id: Optional[str] = Query(None),
    services: Services = Depends(get_services),
    engine: ReconciliationEngine = Depends(get_engine),
):
    """Receive a job completion push from a provider.

    - **provider**: Provider slug ('wavespeed' or 'fal')
    - **record_id**: Batch record the job belongs to (required)
    - **run_id**: Batch run identifier (logged only)
    """
    try:
        provider_name = ProviderName.parse(provider)
    except InvalidProvider as e:
        return JSONResponse(status_code=404, content={"success": False, "error": str(e)})

    gateway = services.gateways.get(provider_name)
    if gateway is None:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": f"Provider {provider_name.value} not enabled"},
        )

    if not record_id:
        logger.warning("webhook_missing_record_id", provider=provider_name.value, run_id=run_id)
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "record_id query parameter is required"},
        )

    try:
        payload = await request.json()
    except ValueError:
        payload = None

    if not isinstance(payload, dict):
        logger.warning("webhook_body_invalid", provider=provider_name.value, record_id=record_id)
        return JSONResponse(content={"success": True, "decision": "ignored"})

    event = gateway.parse_webhook(payload)
    if event is None:
        logger.info(
            "webhook_without_outcome",
            provider=provider_name.value,
            record_id=record_id,
            run_id=run_id,
        )
        return JSONResponse(content={"success": True, "decision": "ignored"})

    try:
        # Shielded so a dropped connection does not abort a merge midway
        decision = await asyncio.shield(
            engine.merge_completion(record_id, event.job_id, event.status)
        )
    except Exception as e:
        logger.error(
            "webhook_merge_failed",
            provider=provider_name.value,
            record_id=record_id,
            job_id=event.job_id,
            error=str(e),
        )
        return JSONResponse(content={"success": True, "decision": "error"})

    logger.info(
        "webhook_processed",
        provider=provider_name.value,
        record_id=record_id,
        run_id=run_id,
        job_id=event.job_id,
        decision=decision.value,
    )
    return JSONResponse(content={"success": True, "decision": decision.value})
