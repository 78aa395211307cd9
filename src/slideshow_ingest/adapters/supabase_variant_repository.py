"""Supabase-backed device variant repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from slideshow_ingest.domain.blobs import DeviceVariant, LayoutType, Orientation
from slideshow_ingest.domain.picker import parse_timestamp
from slideshow_ingest.services.blobs import VariantRepository

_COLUMNS = (
    "id, device, blob_hash, width, height, orientation, layout_type, "
    "storage_path, file_size, processed_at"
)


@dataclass
class SupabaseVariantRepository(VariantRepository):
    """Supabase implementation for device variants."""

    client: Client

    def upsert_variant(self, variant: DeviceVariant) -> None:
        """Write the variant keyed by its deterministic id."""
        processed_at = variant.processed_at or datetime.now(tz=UTC)
        self.client.table("device_variants").upsert(
            {
                "id": variant.id,
                "device": variant.device,
                "blob_hash": variant.blob_hash,
                "width": variant.width,
                "height": variant.height,
                "orientation": variant.orientation.value,
                "layout_type": variant.layout_type.value,
                "storage_path": variant.storage_path,
                "file_size": variant.file_size,
                "processed_at": processed_at.isoformat(),
            },
            on_conflict="id",
        ).execute()

    def list_variants(self, blob_hash: str) -> list[DeviceVariant]:
        response = (
            self.client.table("device_variants")
            .select(_COLUMNS)
            .eq("blob_hash", blob_hash)
            .execute()
        )
        return [_to_variant(row) for row in response.data or []]

    def delete_variants_for_blob(self, blob_hash: str) -> int:
        response = (
            self.client.table("device_variants")
            .delete()
            .eq("blob_hash", blob_hash)
            .execute()
        )
        return len(response.data or [])

    def delete_all_variants(self) -> int:
        response = self.client.table("device_variants").delete().neq("id", "").execute()
        return len(response.data or [])


def _to_variant(row: dict[str, object]) -> DeviceVariant:
    return DeviceVariant(
        id=str(row["id"]),
        device=str(row["device"]),
        blob_hash=str(row["blob_hash"]),
        width=int(row["width"]),
        height=int(row["height"]),
        orientation=Orientation(row["orientation"]),
        layout_type=LayoutType(row.get("layout_type") or LayoutType.MONOTYCH),
        storage_path=str(row["storage_path"]),
        file_size=row.get("file_size"),
        processed_at=parse_timestamp(row.get("processed_at")),
    )
