"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import (
    APIRouter,
    Depends,
    File,
    Header,
    HTTPException,
    Request,
    UploadFile,
    status,
)

from slideshow_ingest.domain.errors import NotFoundError, ValidationError
from slideshow_ingest.services.picker_import import summarize

if TYPE_CHECKING:
    from slideshow_ingest.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])

UPLOAD_ORIGIN = "upload"


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/blobs", dependencies=[Depends(require_admin)])
async def list_blobs(request: Request) -> dict[str, object]:
    """Return stored blobs with their analysis state."""
    container: AppContainer = request.app.state.container
    blobs = container.blob_service.list_blobs()
    return {
        "blobs": [
            {
                "hash": blob.hash,
                "title": blob.title,
                "orientation": blob.orientation.value,
                "width": blob.width,
                "height": blob.height,
                "analyzed": blob.is_analyzed,
            }
            for blob in blobs
        ]
    }


@router.delete("/blobs", dependencies=[Depends(require_admin)])
async def delete_all_blobs(request: Request, confirm: bool = False) -> dict[str, int]:
    """Delete every blob and variant."""
    if not confirm:
        raise ValidationError("Pass confirm=true to delete every blob")
    container: AppContainer = request.app.state.container
    report = container.blob_service.delete_all()
    return {"deleted": report.deleted, "processedDeleted": report.processed_deleted}


@router.delete("/blobs/{blob_hash}", dependencies=[Depends(require_admin)])
async def delete_blob(blob_hash: str, request: Request) -> dict[str, bool]:
    """Delete one blob with its variants."""
    container: AppContainer = request.app.state.container
    if not container.blob_service.delete(blob_hash):
        raise NotFoundError("blob", blob_hash)
    return {"deleted": True}


@router.post("/blobs/analyze", dependencies=[Depends(require_admin)])
async def reanalyze_blobs(request: Request) -> dict[str, str]:
    """Start analysis of every unanalyzed blob in the background."""
    container: AppContainer = request.app.state.container
    container.dispatcher.launch(
        container.enrichment_service.reanalyze_all(), name="reanalyze-all"
    )
    return {"status": "started"}


@router.post("/blobs/{blob_hash}/analyze", dependencies=[Depends(require_admin)])
async def analyze_blob(
    blob_hash: str, request: Request, force: bool = False
) -> dict[str, object]:
    """Analyze one blob now and return the stored result."""
    container: AppContainer = request.app.state.container
    if force:
        container.enrichment_service.clear_analysis(blob_hash)
    analysis = await container.enrichment_service.analyze(blob_hash)
    if analysis is None:
        return {"analyzed": False}
    return {"analyzed": True, "analysis": analysis.model_dump(mode="json")}


@router.post("/upload", dependencies=[Depends(require_admin)])
async def upload_images(
    request: Request, files: list[UploadFile] = File(...)
) -> dict[str, object]:
    """Ingest directly uploaded image files, one after another."""
    container: AppContainer = request.app.state.container
    details = []
    for upload in files:
        filename = upload.filename or "upload"
        details.append(
            await container.image_ingestor.ingest(
                upload.read,
                origin=UPLOAD_ORIGIN,
                item_id=filename,
                filename=filename,
            )
        )
    summary = summarize(details, total=len(files))
    return {
        "total": summary.total,
        "ingested": summary.ingested,
        "failed": summary.failed,
        "details": [detail.to_json() for detail in summary.details],
    }
