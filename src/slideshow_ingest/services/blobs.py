"""Content-addressed blob store with deduplication."""

import logging
from dataclasses import asdict, dataclass
from typing import Protocol
from uuid import UUID

from slideshow_ingest.domain.blobs import (
    Blob,
    BlobAttributes,
    DeviceVariant,
    Source,
    SourceOutcome,
    SourceStatus,
)
from slideshow_ingest.domain.errors import NotFoundError

_logger = logging.getLogger(__name__)


class BlobRepository(Protocol):
    """Persistence interface for blobs keyed by content hash."""

    def get_blob(self, blob_hash: str) -> Blob | None:
        """Return a blob by hash, if present."""

    def insert_if_absent(self, blob_hash: str, attributes: BlobAttributes) -> bool:
        """Atomically insert a blob; return False when the hash already exists."""

    def update_blob(self, blob_hash: str, fields: dict[str, object]) -> bool:
        """Merge fields into a blob; return False when it does not exist."""

    def delete_blob(self, blob_hash: str) -> bool:
        """Delete a blob; return whether it existed."""

    def delete_all_blobs(self) -> int:
        """Delete every blob and return the count."""

    def list_blobs(self) -> list[Blob]:
        """Return all blobs."""


class VariantRepository(Protocol):
    """Persistence interface for device variants."""

    def upsert_variant(self, variant: DeviceVariant) -> None:
        """Create or overwrite the variant with the same id."""

    def list_variants(self, blob_hash: str) -> list[DeviceVariant]:
        """Return all variants of a blob."""

    def delete_variants_for_blob(self, blob_hash: str) -> int:
        """Delete the variants of a blob and return the count."""

    def delete_all_variants(self) -> int:
        """Delete every variant and return the count."""


class SourceRepository(Protocol):
    """Persistence interface for ingestion sources."""

    def create_source(
        self,
        origin: str,
        user_id: str | None = None,
        external_id: str | None = None,
    ) -> Source:
        """Create a pending source and return it."""

    def get_source(self, source_id: UUID) -> Source | None:
        """Return a source by id, if present."""

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
        """Move a source to a new status, stamping completion when requested."""

    def clear_blob_hash(self, blob_hash: str) -> None:
        """Unlink every source that resolved to a blob."""

    def clear_all_blob_hashes(self) -> None:
        """Unlink every source from its blob."""


class ObjectStorage(Protocol):
    """Interface for the object store holding image bytes."""

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store bytes at path, overwriting, and return the stored path."""

    def public_url(self, path: str) -> str:
        """Return a URL that external services can fetch."""

    def remove(self, paths: list[str]) -> None:
        """Delete stored objects."""


@dataclass(frozen=True)
class BlobCreation:
    """Identity of the blob for a hash and whether this call created it."""

    hash: str
    created: bool


@dataclass(frozen=True)
class DeletionReport:
    """Counts removed by a destructive blob operation."""

    deleted: int
    processed_deleted: int


_IMMUTABLE_FIELDS = frozenset({"hash", "created_at"})


@dataclass
class BlobService:
    """Lookup, dedup-safe creation, partial updates and cascading deletes."""

    blob_repository: BlobRepository
    variant_repository: VariantRepository
    source_repository: SourceRepository
    storage: ObjectStorage

    def resolve(self, blob_hash: str) -> Blob | None:
        """Return the blob for a hash, if stored."""
        return self.blob_repository.get_blob(blob_hash)

    def create_if_absent(self, blob_hash: str, attributes: BlobAttributes) -> BlobCreation:
        """Create a blob unless one with this hash exists.

        The repository insert is a single atomic insert-or-ignore, so
        concurrent callers with the same hash end up with one record.
        """
        created = self.blob_repository.insert_if_absent(blob_hash, attributes)
        if created:
            _logger.info("Created blob", extra={"blob_hash": blob_hash})
        return BlobCreation(hash=blob_hash, created=created)

    def update(self, blob_hash: str, fields: dict[str, object]) -> None:
        """Merge only the given fields; others are left untouched."""
        changes = {
            key: value for key, value in fields.items() if key not in _IMMUTABLE_FIELDS
        }
        if not changes:
            return
        if not self.blob_repository.update_blob(blob_hash, changes):
            raise NotFoundError("blob", blob_hash)

    def list_blobs(self) -> list[Blob]:
        return self.blob_repository.list_blobs()

    def list_variants(self, blob_hash: str) -> list[DeviceVariant]:
        return self.variant_repository.list_variants(blob_hash)

    def delete(self, blob_hash: str) -> bool:
        """Delete a blob with its variants and stored objects.

        Returns False when the blob is not found.
        """
        blob = self.blob_repository.get_blob(blob_hash)
        if blob is None:
            return False
        paths = [blob.storage_path] + [
            variant.storage_path
            for variant in self.variant_repository.list_variants(blob_hash)
        ]
        variants = self.variant_repository.delete_variants_for_blob(blob_hash)
        self.source_repository.clear_blob_hash(blob_hash)
        deleted = self.blob_repository.delete_blob(blob_hash)
        self._remove_objects(paths)
        _logger.info(
            "Deleted blob",
            extra={"blob_hash": blob_hash, "variants_deleted": variants},
        )
        return deleted

    def delete_all(self) -> DeletionReport:
        """Delete every blob, variant and stored object; this cannot be undone."""
        paths: list[str] = []
        for blob in self.blob_repository.list_blobs():
            paths.append(blob.storage_path)
            paths.extend(
                variant.storage_path
                for variant in self.variant_repository.list_variants(blob.hash)
            )
        processed_deleted = self.variant_repository.delete_all_variants()
        self.source_repository.clear_all_blob_hashes()
        deleted = self.blob_repository.delete_all_blobs()
        self._remove_objects(paths)
        _logger.warning(
            "Deleted all blobs: %s blobs, %s variants", deleted, processed_deleted
        )
        return DeletionReport(deleted=deleted, processed_deleted=processed_deleted)

    def _remove_objects(self, paths: list[str]) -> None:
        # Records are already gone; a storage failure leaves orphaned objects only.
        bucket_paths = [path for path in paths if "://" not in path]
        if not bucket_paths:
            return
        try:
            self.storage.remove(bucket_paths)
        except Exception:
            _logger.exception(
                "Failed to remove stored objects", extra={"paths": len(paths)}
            )


def attributes_to_row(attributes: BlobAttributes) -> dict[str, object]:
    """Serialize blob attributes for storage."""
    row = asdict(attributes)
    row["orientation"] = attributes.orientation.value
    return row
