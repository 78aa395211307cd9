"""State machine for remote photo picker sessions."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from slideshow_ingest.adapters.google_photos_picker_client import PickerClient
from slideshow_ingest.domain.errors import NotFoundError, RemoteServiceError
from slideshow_ingest.domain.picker import (
    PickedMediaItem,
    PickerSession,
    PickerState,
    PollingConfig,
    PollResult,
    RemoteSession,
    RemoteSessionStatus,
    parse_timestamp,
)

MEDIA_PAGE_SIZE = 100
AUTOCLOSE_SUFFIX = "/autoclose"

_logger = logging.getLogger(__name__)


class PickerSessionRepository(Protocol):
    """Persistence interface for picker sessions."""

    def create_session(  # noqa: PLR0913
        self,
        user_id: str,
        picker_session_id: str,
        picker_uri: str,
        polling_config: PollingConfig,
        expire_time: datetime | None,
    ) -> PickerSession:
        """Create a session record and return it."""

    def get_session(self, session_id: UUID) -> PickerSession | None:
        """Return a session by local id, if present."""

    def update_session(
        self,
        session_id: UUID,
        *,
        media_items_set: bool | None = None,
        polling_config: PollingConfig | None = None,
    ) -> None:
        """Update the mutable fields of a session."""

    def delete_session(self, session_id: UUID) -> bool:
        """Delete a session; return whether it existed."""

    def delete_expired(self, now: datetime) -> int:
        """Delete every session whose expiry is before now; return the count."""


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class PickerService:
    """Drives a picker session from creation to selection or expiry."""

    client: PickerClient
    repository: PickerSessionRepository
    default_polling: PollingConfig = field(default_factory=PollingConfig)
    clock: Callable[[], datetime] = utcnow

    async def create(self, user_id: str, access_token: str) -> PickerSession:
        """Allocate a remote session and persist it locally."""
        try:
            swept = self.sweep_expired()
            if swept:
                _logger.info("Swept %s expired picker sessions", swept)
        except Exception:
            _logger.exception("Failed to sweep expired picker sessions")

        remote = _parse_remote_session(await self.client.create_session(access_token))
        session = self.repository.create_session(
            user_id=user_id,
            picker_session_id=remote.id,
            picker_uri=remote.picker_uri + AUTOCLOSE_SUFFIX,
            polling_config=self.default_polling.refine(remote.polling_config),
            expire_time=remote.expire_time,
        )
        _logger.info(
            "Created picker session",
            extra={"session_id": str(session.id), "picker_session_id": remote.id},
        )
        return session

    def get(self, session_id: UUID) -> PickerSession:
        """Return a local session or raise NotFoundError."""
        session = self.repository.get_session(session_id)
        if session is None:
            raise NotFoundError("picker session", session_id)
        return session

    async def poll(self, session_id: UUID, access_token: str) -> PollResult:
        """Check remote status once and advance the session state."""
        session = self.get(session_id)
        if session.is_expired(self.clock()):
            return PollResult(state=PickerState.EXPIRED, session=session)

        raw = await self.client.get_session(access_token, session.picker_session_id)
        if raw is None:
            _logger.info(
                "Picker session gone remotely",
                extra={"session_id": str(session_id)},
            )
            return PollResult(state=PickerState.EXPIRED, session=session)

        status = _parse_remote_status(raw)
        if status.expire_time is not None and status.expire_time <= self.clock():
            return PollResult(state=PickerState.EXPIRED, session=session)

        polling = session.polling_config.refine(status.polling_config)
        polling_changed = polling != session.polling_config
        if polling_changed or status.media_items_set != session.media_items_set:
            self.repository.update_session(
                session_id,
                media_items_set=status.media_items_set,
                polling_config=polling,
            )
            session = replace(
                session,
                media_items_set=status.media_items_set,
                polling_config=polling,
            )

        state = PickerState.SELECTED if status.media_items_set else PickerState.POLLING
        return PollResult(state=state, session=session, polling_changed=polling_changed)

    async def list_selected_items(
        self, session_id: UUID, access_token: str
    ) -> list[PickedMediaItem]:
        """Return every selected media item, following page tokens."""
        session = self.get(session_id)
        items: list[PickedMediaItem] = []
        page_token: str | None = None
        while True:
            payload = await self.client.list_media_items(
                access_token,
                session.picker_session_id,
                page_size=MEDIA_PAGE_SIZE,
                page_token=page_token,
            )
            raw_items = payload.get("mediaItems") or []
            if isinstance(raw_items, list):
                items.extend(
                    _parse_media_item(raw) for raw in raw_items if isinstance(raw, dict)
                )
            next_token = payload.get("nextPageToken")
            page_token = next_token if isinstance(next_token, str) else None
            if not page_token:
                break
        _logger.info(
            "Retrieved %s media items from picker session",
            len(items),
            extra={"session_id": str(session_id)},
        )
        return items

    async def download(
        self,
        item: PickedMediaItem,
        access_token: str,
        width: int | None = None,
        height: int | None = None,
    ) -> bytes:
        """Download a selected item, original size unless dimensions are given."""
        return await self.client.download(access_token, item.download_url(width, height))

    def delete(self, session_id: UUID) -> bool:
        """Remove the local record; the remote session expires on its own."""
        return self.repository.delete_session(session_id)

    def sweep_expired(self) -> int:
        """Remove every local session past its expiry."""
        return self.repository.delete_expired(self.clock())


def _parse_remote_session(payload: dict[str, object]) -> RemoteSession:
    session_id = payload.get("id")
    picker_uri = payload.get("pickerUri")
    if not isinstance(session_id, str) or not isinstance(picker_uri, str):
        raise RemoteServiceError("picker", "Session response missing id or pickerUri")
    polling = payload.get("pollingConfig")
    return RemoteSession(
        id=session_id,
        picker_uri=picker_uri,
        polling_config=polling if isinstance(polling, dict) else None,
        expire_time=parse_timestamp(payload.get("expireTime")),
    )


def _parse_remote_status(payload: dict[str, object]) -> RemoteSessionStatus:
    polling = payload.get("pollingConfig")
    return RemoteSessionStatus(
        media_items_set=bool(payload.get("mediaItemsSet", False)),
        polling_config=polling if isinstance(polling, dict) else None,
        expire_time=parse_timestamp(payload.get("expireTime")),
    )


def _parse_media_item(payload: dict[str, object]) -> PickedMediaItem:
    media_file = payload.get("mediaFile") or {}
    if not isinstance(media_file, dict):
        media_file = {}
    metadata = media_file.get("mediaFileMetadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}
    return PickedMediaItem(
        id=str(payload.get("id", "")),
        type=str(payload.get("type", "TYPE_UNSPECIFIED")),
        base_url=str(media_file.get("baseUrl", "")),
        mime_type=str(media_file.get("mimeType", "image/jpeg")),
        filename=str(media_file.get("filename", "")),
        width=_as_int(metadata.get("width")),
        height=_as_int(metadata.get("height")),
        create_time=payload.get("createTime")
        if isinstance(payload.get("createTime"), str)
        else None,
    )


def _as_int(value: object) -> int | None:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None
