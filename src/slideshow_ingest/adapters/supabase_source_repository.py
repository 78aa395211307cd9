"""Supabase-backed source repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from slideshow_ingest.domain.blobs import Source, SourceOutcome, SourceStatus
from slideshow_ingest.domain.errors import RemoteServiceError
from slideshow_ingest.domain.picker import parse_timestamp
from slideshow_ingest.services.blobs import SourceRepository

_COLUMNS = (
    "id, origin, status, user_id, external_id, outcome, status_message, "
    "blob_hash, ingested_at, processed_at"
)


@dataclass
class SupabaseSourceRepository(SourceRepository):
    """Supabase implementation for ingestion sources."""

    client: Client

    def create_source(
        self,
        origin: str,
        user_id: str | None = None,
        external_id: str | None = None,
    ) -> Source:
        response = (
            self.client.table("sources")
            .insert(
                {
                    "origin": origin,
                    "user_id": user_id,
                    "external_id": external_id,
                    "status": SourceStatus.PENDING.value,
                    "ingested_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RemoteServiceError("supabase", "Failed to create source")
        return _to_source(response.data[0])

    def get_source(self, source_id: UUID) -> Source | None:
        response = (
            self.client.table("sources")
            .select(_COLUMNS)
            .eq("id", str(source_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_source(response.data[0])

    def update_source(  # noqa: PLR0913
        self,
        source_id: UUID,
        status: SourceStatus,
        *,
        outcome: SourceOutcome | None = None,
        blob_hash: str | None = None,
        status_message: str | None = None,
        completed: bool = False,
    ) -> None:
        payload: dict[str, object] = {"status": status.value}
        if outcome is not None:
            payload["outcome"] = outcome.value
        if blob_hash is not None:
            payload["blob_hash"] = blob_hash
        if status_message is not None:
            payload["status_message"] = status_message
        if completed:
            payload["processed_at"] = datetime.now(tz=UTC).isoformat()
        self.client.table("sources").update(payload).eq("id", str(source_id)).execute()

    def clear_blob_hash(self, blob_hash: str) -> None:
        self.client.table("sources").update({"blob_hash": None}).eq(
            "blob_hash", blob_hash
        ).execute()

    def clear_all_blob_hashes(self) -> None:
        # Updates need a filter; rows without a link are left alone.
        self.client.table("sources").update({"blob_hash": None}).neq(
            "blob_hash", ""
        ).execute()


def _to_source(row: dict[str, object]) -> Source:
    outcome = row.get("outcome")
    return Source(
        id=UUID(str(row["id"])),
        origin=str(row["origin"]),
        status=SourceStatus(row["status"]),
        user_id=row.get("user_id"),
        external_id=row.get("external_id"),
        outcome=SourceOutcome(outcome) if outcome else None,
        status_message=row.get("status_message"),
        blob_hash=row.get("blob_hash"),
        ingested_at=parse_timestamp(row.get("ingested_at")),
        processed_at=parse_timestamp(row.get("processed_at")),
    )
