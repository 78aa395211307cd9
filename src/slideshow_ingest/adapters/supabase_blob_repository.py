"""Supabase-backed blob repository."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from supabase import Client

from slideshow_ingest.domain.blobs import Blob, BlobAttributes, Orientation
from slideshow_ingest.domain.picker import parse_timestamp
from slideshow_ingest.services.blobs import BlobRepository, attributes_to_row

_COLUMNS = (
    "hash, storage_path, width, height, aspect_ratio, orientation, file_size, "
    "mime_type, exif_data, color_palette, color_source, title, description, "
    "analysis, analyzed_at, created_at"
)


@dataclass
class SupabaseBlobRepository(BlobRepository):
    """Supabase implementation for content-addressed blobs."""

    client: Client

    def get_blob(self, blob_hash: str) -> Blob | None:
        response = (
            self.client.table("blobs")
            .select(_COLUMNS)
            .eq("hash", blob_hash)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_blob(response.data[0])

    def insert_if_absent(self, blob_hash: str, attributes: BlobAttributes) -> bool:
        """Insert-or-ignore on the hash key; an empty result means it existed."""
        row = {"hash": blob_hash, **attributes_to_row(attributes)}
        response = (
            self.client.table("blobs")
            .upsert(row, on_conflict="hash", ignore_duplicates=True)
            .execute()
        )
        return bool(response.data)

    def update_blob(self, blob_hash: str, fields: dict[str, object]) -> bool:
        response = (
            self.client.table("blobs")
            .update(_serialize(fields))
            .eq("hash", blob_hash)
            .execute()
        )
        return bool(response.data)

    def delete_blob(self, blob_hash: str) -> bool:
        response = self.client.table("blobs").delete().eq("hash", blob_hash).execute()
        return bool(response.data)

    def delete_all_blobs(self) -> int:
        # PostgREST refuses an unfiltered delete.
        response = self.client.table("blobs").delete().neq("hash", "").execute()
        return len(response.data or [])

    def list_blobs(self) -> list[Blob]:
        response = (
            self.client.table("blobs")
            .select(_COLUMNS)
            .order("created_at", desc=True)
            .execute()
        )
        return [_to_blob(row) for row in response.data or []]


def _serialize(fields: dict[str, object]) -> dict[str, object]:
    payload: dict[str, object] = {}
    for key, value in fields.items():
        if isinstance(value, datetime):
            payload[key] = value.isoformat()
        elif isinstance(value, Enum):
            payload[key] = value.value
        else:
            payload[key] = value
    return payload


def _to_blob(row: dict[str, object]) -> Blob:
    analysis = row.get("analysis")
    return Blob(
        hash=str(row["hash"]),
        storage_path=str(row["storage_path"]),
        width=int(row["width"]),
        height=int(row["height"]),
        aspect_ratio=float(row["aspect_ratio"]),
        orientation=Orientation(row["orientation"]),
        file_size=row.get("file_size"),
        mime_type=row.get("mime_type"),
        exif_data=row.get("exif_data"),
        color_palette=row.get("color_palette"),
        color_source=row.get("color_source"),
        title=row.get("title"),
        description=row.get("description"),
        analysis=analysis if isinstance(analysis, dict) else None,
        analyzed_at=parse_timestamp(row.get("analyzed_at")),
        created_at=parse_timestamp(row.get("created_at")),
    )
