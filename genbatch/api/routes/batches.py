"""Batch routes for genbatch API - start batches and inspect their records."""

import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from genbatch.api.dependencies import get_coordinator, get_repository, get_scanner
from genbatch.api.models import StartBatchRequest
from genbatch.core.batch.coordinator import BatchCoordinator
from genbatch.core.errors import InvalidProvider, RecordNotFoundError, StoreError
from genbatch.core.logging import logger
from genbatch.core.reconciliation.scanner import StuckJobScanner
from genbatch.infrastructure.database.repositories import BaseRepository

router = APIRouter(tags=["Batches"])


async def _read_body(request: Request) -> Dict[str, Any]:
    """Accept JSON as well as form-encoded bodies."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        body = await request.json()
        return body if isinstance(body, dict) else {}
    form = await request.form()
    return dict(form)


@router.post("/api/start-batch")
async def start_batch(
    request: Request,
    coordinator: BatchCoordinator = Depends(get_coordinator),
):
    """Create a batch record and submit its jobs.

    - **provider**: 'WaveSpeed' or 'Fal'
    - **prompt**: Generation prompt (required)
    - **subject_url**: Optional subject image URL
    - **reference_urls**: Optional reference image URLs
    - **width** / **height**: Output size in pixels
    - **count**: Number of jobs in the batch
    """
    start_time = time.time()

    try:
        batch_request = StartBatchRequest.model_validate(await _read_body(request))
    except ValidationError as e:
        error_response = {
            "success": False,
            "error": "Invalid batch request",
            "details": e.errors(include_url=False, include_context=False),
        }
        return JSONResponse(status_code=400, content=error_response)
    except ValueError as e:
        return JSONResponse(
            status_code=400, content={"success": False, "error": f"Invalid body: {str(e)}"}
        )

    try:
        summary = await coordinator.submit_batch(
            prompt=batch_request.prompt,
            provider=batch_request.provider,
            assets=batch_request.assets(),
            width=batch_request.width,
            height=batch_request.height,
            count=batch_request.count,
        )

    except InvalidProvider as e:
        return JSONResponse(status_code=400, content={"success": False, "error": str(e)})

    except StoreError as e:
        logger.error("start_batch_store_failed", error=str(e))
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": f"Failed to start batch: {str(e)}"},
        )

    except Exception as e:
        logger.error("start_batch_failed", error=str(e), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": f"Failed to start batch: {str(e)}"},
        )

    response = {
        "success": True,
        "record_id": summary.record_id,
        "run_id": summary.run_id,
        "status": summary.status.value,
        "submitted": summary.submitted,
        "failed": summary.failed,
        "failures": summary.failures,
        "processing_ms": int((time.time() - start_time) * 1000),
        "message": "Batch started.",
    }
    return JSONResponse(content=response)


@router.get("/api/batches/{record_id}")
async def get_batch(
    record_id: str,
    repository: BaseRepository = Depends(get_repository),
):
    """Return the current state of one batch record."""
    try:
        record = await repository.get(record_id)

    except RecordNotFoundError:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": f"Batch {record_id} not found"},
        )

    except StoreError as e:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": f"Failed to load batch: {str(e)}"},
        )

    return JSONResponse(
        content={
            "success": True,
            "data": {
                "record_id": record.record_id,
                **record.to_fields(),
                "pending_job_ids": record.pending_job_ids(),
            },
        }
    )


@router.post("/api/scan")
async def run_scan(scanner: StuckJobScanner = Depends(get_scanner)):
    """Run one stuck-job scanner cycle now and return its report."""
    report = await scanner.run_cycle()
    return JSONResponse(content={"success": True, "data": report.to_dict()})
