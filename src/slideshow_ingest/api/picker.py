"""Picker session endpoints."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field

from slideshow_ingest.domain.errors import IngestError, NotFoundError, SessionExpiredError
from slideshow_ingest.domain.picker import PickerSession, PickerState

if TYPE_CHECKING:
    from slideshow_ingest.containers import AppContainer
    from slideshow_ingest.domain.picker import PollResult

router = APIRouter(prefix="/picker/sessions", tags=["picker"])

_logger = logging.getLogger(__name__)


class CreateSessionRequest(BaseModel):
    """Optional body for session creation."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(default="default", alias="userId", min_length=1)
    auto_import: bool = Field(default=False, alias="autoImport")


async def require_access_token(authorization: str | None = Header(default=None)) -> str:
    """Return the caller's picker bearer credential."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer access token",
        )
    token = authorization.removeprefix("Bearer ").strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return token


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    request: Request,
    body: CreateSessionRequest | None = None,
    access_token: str = Depends(require_access_token),
) -> dict[str, object]:
    """Create a picker session and return the URI to open."""
    container: AppContainer = request.app.state.container
    payload = body or CreateSessionRequest()
    session = await container.picker_service.create(payload.user_id, access_token)
    if payload.auto_import:
        _start_auto_import(container, session.id, access_token)
    return _session_payload(session)


@router.get("/{session_id}")
async def poll_session(
    session_id: UUID, request: Request, access_token: str = Depends(require_access_token)
) -> dict[str, object]:
    """Check whether the user finished selecting media."""
    container: AppContainer = request.app.state.container
    result = await container.picker_service.poll(session_id, access_token)
    if result.state is PickerState.EXPIRED:
        raise SessionExpiredError(str(session_id))
    return {
        "state": result.state.value,
        **_session_payload(result.session),
    }


@router.get("/{session_id}/media")
async def list_media(
    session_id: UUID, request: Request, access_token: str = Depends(require_access_token)
) -> dict[str, object]:
    """List the media items selected in a session."""
    container: AppContainer = request.app.state.container
    items = await container.picker_service.list_selected_items(session_id, access_token)
    return {"mediaItems": [asdict(item) for item in items]}


@router.post("/{session_id}/ingest")
async def ingest_session(
    session_id: UUID, request: Request, access_token: str = Depends(require_access_token)
) -> dict[str, object]:
    """Import every selected photo of a session."""
    container: AppContainer = request.app.state.container
    container.picker_poller.stop(session_id)
    summary = await container.import_service.import_session(session_id, access_token)
    return {
        "total": summary.total,
        "ingested": summary.ingested,
        "skipped": summary.skipped,
        "failed": summary.failed,
        "details": [detail.to_json() for detail in summary.details],
    }


@router.delete("/{session_id}")
async def delete_session(session_id: UUID, request: Request) -> dict[str, bool]:
    """Forget a session locally."""
    container: AppContainer = request.app.state.container
    container.picker_poller.stop(session_id)
    if not container.picker_service.delete(session_id):
        raise NotFoundError("picker session", session_id)
    return {"deleted": True}


def _start_auto_import(container: AppContainer, session_id: UUID, access_token: str) -> None:
    async def on_selected(result: PollResult) -> None:
        try:
            summary = await container.import_service.import_session(
                result.session.id, access_token
            )
        except IngestError:
            _logger.exception("Auto import failed", extra={"session_id": str(session_id)})
            return
        _logger.info(
            "Auto import finished",
            extra={"session_id": str(session_id), "ingested": summary.ingested},
        )

    async def on_expired(_result: PollResult) -> None:
        _logger.info("Picker session expired", extra={"session_id": str(session_id)})

    async def on_failed(failed_id: UUID, exc: Exception) -> None:
        _logger.warning(
            "Picker polling stopped", extra={"session_id": str(failed_id), "error": str(exc)}
        )

    container.picker_poller.start(
        session_id,
        access_token,
        on_selected=on_selected,
        on_expired=on_expired,
        on_failed=on_failed,
    )


def _session_payload(session: PickerSession) -> dict[str, object]:
    return {
        "id": str(session.id),
        "pickerUri": session.picker_uri,
        "mediaItemsSet": session.media_items_set,
        "expireTime": session.expire_time.isoformat() if session.expire_time else None,
        "pollingConfig": {
            "pollIntervalMs": session.polling_config.poll_interval_ms,
            "longPollTimeoutMs": session.polling_config.long_poll_timeout_ms,
        },
    }
