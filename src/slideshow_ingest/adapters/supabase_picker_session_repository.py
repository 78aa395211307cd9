"""Supabase-backed picker session repository."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from supabase import Client

from slideshow_ingest.domain.errors import RemoteServiceError
from slideshow_ingest.domain.picker import PickerSession, PollingConfig, parse_timestamp
from slideshow_ingest.services.picker import PickerSessionRepository

_COLUMNS = (
    "id, user_id, picker_session_id, picker_uri, media_items_set, "
    "polling_config, expire_time, created_at"
)


@dataclass
class SupabasePickerSessionRepository(PickerSessionRepository):
    """Supabase implementation for picker sessions."""

    client: Client
    default_polling: PollingConfig = field(default_factory=PollingConfig)

    def create_session(  # noqa: PLR0913
        self,
        user_id: str,
        picker_session_id: str,
        picker_uri: str,
        polling_config: PollingConfig,
        expire_time: datetime | None,
    ) -> PickerSession:
        """Create a session row and return it."""
        response = (
            self.client.table("picker_sessions")
            .insert(
                {
                    "user_id": user_id,
                    "picker_session_id": picker_session_id,
                    "picker_uri": picker_uri,
                    "media_items_set": False,
                    "polling_config": polling_config.to_json(),
                    "expire_time": expire_time.isoformat() if expire_time else None,
                }
            )
            .execute()
        )
        if not response.data:
            raise RemoteServiceError("supabase", "Failed to create picker session")
        return self._to_session(response.data[0])

    def get_session(self, session_id: UUID) -> PickerSession | None:
        """Return a session by id, if present."""
        response = (
            self.client.table("picker_sessions")
            .select(_COLUMNS)
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return self._to_session(response.data[0])

    def update_session(
        self,
        session_id: UUID,
        *,
        media_items_set: bool | None = None,
        polling_config: PollingConfig | None = None,
    ) -> None:
        """Update the selection flag and polling cadence."""
        payload: dict[str, object] = {}
        if media_items_set is not None:
            payload["media_items_set"] = media_items_set
        if polling_config is not None:
            payload["polling_config"] = polling_config.to_json()
        if not payload:
            return
        self.client.table("picker_sessions").update(payload).eq(
            "id", str(session_id)
        ).execute()

    def delete_session(self, session_id: UUID) -> bool:
        response = (
            self.client.table("picker_sessions")
            .delete()
            .eq("id", str(session_id))
            .execute()
        )
        return bool(response.data)

    def delete_expired(self, now: datetime) -> int:
        """Delete sessions whose expiry has passed."""
        response = (
            self.client.table("picker_sessions")
            .delete()
            .lt("expire_time", now.isoformat())
            .execute()
        )
        return len(response.data or [])

    def _to_session(self, row: dict[str, object]) -> PickerSession:
        return PickerSession(
            id=UUID(str(row["id"])),
            user_id=str(row["user_id"]),
            picker_session_id=str(row["picker_session_id"]),
            picker_uri=str(row["picker_uri"]),
            media_items_set=bool(row.get("media_items_set")),
            polling_config=PollingConfig.from_json(
                row.get("polling_config"), self.default_polling
            ),
            expire_time=parse_timestamp(row.get("expire_time")),
            created_at=parse_timestamp(row.get("created_at")),
        )
