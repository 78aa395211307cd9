"""Endpoints called by the external processing worker."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel, Field

from slideshow_ingest.domain.processing import parse_processing_result

if TYPE_CHECKING:
    from slideshow_ingest.containers import AppContainer

router = APIRouter(prefix="/processing", tags=["processing"])


class FailureReport(BaseModel):
    error: str = Field(min_length=1)


def _get_processor_token(request: Request) -> str | None:
    container: AppContainer = request.app.state.container
    return container.settings.processor_auth_token


async def require_processor(
    authorization: str | None = Header(default=None),
    processor_token: str | None = Depends(_get_processor_token),
) -> None:
    """Check the worker's bearer token when one is configured."""
    if processor_token is None:
        return
    if authorization != f"Bearer {processor_token}":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post("/{source_id}/start", dependencies=[Depends(require_processor)])
async def start_processing(source_id: UUID, request: Request) -> dict[str, object]:
    """Return the device roster the worker renders variants for."""
    container: AppContainer = request.app.state.container
    source = container.ingestion_service.get_source(source_id)
    devices = container.device_repository.list_devices()
    return {
        "attempt": 1,
        "source": {
            "id": str(source.id),
            "origin": source.origin,
            "externalId": source.external_id,
            "status": source.status.value,
        },
        "devices": [
            {
                "id": device.id,
                "name": device.name,
                "width": device.width,
                "height": device.height,
                "orientation": device.orientation.value,
                "gap": device.gap,
            }
            for device in devices
        ],
    }


@router.post("/{source_id}/complete", dependencies=[Depends(require_processor)])
async def complete_processing(
    source_id: UUID, request: Request, payload: dict[str, object] = Body(...)
) -> dict[str, object]:
    """Record the worker's result for a source."""
    container: AppContainer = request.app.state.container
    result = parse_processing_result(payload)
    report = await container.ingestion_service.complete(source_id, result)
    return {
        "success": report.success,
        "blobHash": report.blob_hash,
        "outcome": report.outcome.value,
        "variantsRecorded": report.variants_recorded,
        "variantFailures": [
            {"device": failure.device, "layout": failure.layout.value, "error": failure.error}
            for failure in report.variant_failures
        ],
    }


@router.post("/{source_id}/fail", dependencies=[Depends(require_processor)])
async def fail_processing(
    source_id: UUID, report: FailureReport, request: Request
) -> dict[str, bool]:
    """Record that the worker could not process a source."""
    container: AppContainer = request.app.state.container
    container.ingestion_service.fail(source_id, report.error)
    return {"success": True}


@router.get("/check-hash/{blob_hash}", dependencies=[Depends(require_processor)])
async def check_hash(blob_hash: str, request: Request) -> dict[str, object]:
    """Tell the worker whether content with this hash is already stored."""
    container: AppContainer = request.app.state.container
    return {
        "exists": container.blob_service.resolve(blob_hash) is not None,
        "hash": blob_hash,
    }
