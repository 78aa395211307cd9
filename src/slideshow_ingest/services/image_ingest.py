"""Single-image ingestion shared by picker imports and direct uploads."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import Protocol
from uuid import UUID

from slideshow_ingest.domain.blobs import (
    Device,
    Source,
    SourceOutcome,
    SourceStatus,
    orientation_for,
)
from slideshow_ingest.domain.processing import BlobData, ColorData, ProcessingResult
from slideshow_ingest.services.blobs import BlobService, ObjectStorage, SourceRepository
from slideshow_ingest.services.fanout import FanoutGenerator, VariantFailure
from slideshow_ingest.services.ingestion import IngestionService
from slideshow_ingest.services.layouts import plan_jobs

_logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
}


@dataclass(frozen=True)
class InspectedImage:
    """Canonical identity and properties of decoded image bytes."""

    hash: str
    width: int
    height: int
    mime_type: str
    palette: str | None = None
    color_source: str | None = None
    exif_data: str | None = None


class ImageInspector(Protocol):
    """Interface for decoding image bytes into canonical properties."""

    def inspect(self, image_bytes: bytes) -> InspectedImage:
        """Decode an image and compute its pixel hash."""


class DeviceRepository(Protocol):
    """Read access to the device registry."""

    def list_devices(self) -> list[Device]:
        """Return every registered device."""


@dataclass(frozen=True)
class ImportDetail:
    """Per-image result; variant problems never change the status."""

    item_id: str
    filename: str
    status: str
    blob_hash: str | None = None
    error: str | None = None
    variant_failures: list[VariantFailure] = field(default_factory=list)

    def to_json(self) -> dict[str, object]:
        return {
            "item_id": self.item_id,
            "filename": self.filename,
            "status": self.status,
            "blob_hash": self.blob_hash,
            "error": self.error,
            "variant_failures": [
                {
                    "device": failure.device,
                    "layout": failure.layout.value,
                    "error": failure.error,
                }
                for failure in self.variant_failures
            ],
        }


@dataclass
class ImageIngestor:
    """Fetches, hashes, stores and completes one image, then renders its variants."""

    inspector: ImageInspector
    storage: ObjectStorage
    blobs: BlobService
    sources: SourceRepository
    ingestion: IngestionService
    fanout: FanoutGenerator
    devices: DeviceRepository

    async def ingest(  # noqa: PLR0913
        self,
        fetch: Callable[[], Awaitable[bytes]],
        *,
        origin: str,
        item_id: str,
        filename: str,
        user_id: str | None = None,
        external_id: str | None = None,
    ) -> ImportDetail:
        """Ingest one image and report how it resolved.

        Any failure before completion is recorded on the source and returned
        as a failed detail instead of raised. Variant rendering runs after the
        source is ready, so its problems only show up on the detail.
        """
        source: Source | None = None
        try:
            source = self.sources.create_source(
                origin, user_id=user_id, external_id=external_id
            )
            image_bytes = await fetch()
            inspected = self.inspector.inspect(image_bytes)
            result = self._build_result(inspected, image_bytes)
            report = await self.ingestion.complete(source.id, result)
        except Exception as exc:
            _logger.exception("Failed to ingest image", extra={"item_id": item_id})
            if source is not None:
                self._mark_failed(source.id, str(exc))
            return ImportDetail(
                item_id=item_id, filename=filename, status="failed", error=str(exc)
            )

        detail = ImportDetail(
            item_id=item_id,
            filename=filename,
            status=report.outcome.value,
            blob_hash=inspected.hash,
        )
        if report.outcome is SourceOutcome.CREATED:
            detail = await self._render_variants(detail, inspected, image_bytes)
        return detail

    def _mark_failed(self, source_id: UUID, message: str) -> None:
        try:
            current = self.sources.get_source(source_id)
            # Completion may already have recorded its own failure.
            if current is not None and current.status is SourceStatus.PENDING:
                self.ingestion.fail(source_id, message)
        except Exception:
            _logger.exception(
                "Failed to record source failure", extra={"source_id": str(source_id)}
            )

    async def _render_variants(
        self, detail: ImportDetail, inspected: InspectedImage, image_bytes: bytes
    ) -> ImportDetail:
        try:
            jobs = plan_jobs(self.devices.list_devices(), inspected.width, inspected.height)
            fanout = await self.fanout.generate(inspected.hash, image_bytes, jobs)
        except Exception as exc:
            _logger.exception(
                "Variant generation failed", extra={"blob_hash": inspected.hash}
            )
            return replace(detail, error=f"Variant generation failed: {exc}")
        if not fanout.failures:
            return detail
        _logger.warning(
            "Some variants failed for %s",
            inspected.hash,
            extra={"failures": len(fanout.failures)},
        )
        return replace(detail, variant_failures=list(fanout.failures))

    def _build_result(self, inspected: InspectedImage, image_bytes: bytes) -> ProcessingResult:
        if self.blobs.resolve(inspected.hash) is not None:
            return ProcessingResult(status="duplicate", blob_hash=inspected.hash)
        extension = _EXTENSIONS.get(inspected.mime_type, "jpg")
        storage_path = self.storage.upload(
            f"originals/{inspected.hash}.{extension}", image_bytes, inspected.mime_type
        )
        color_data = None
        if inspected.palette is not None:
            color_data = ColorData(
                palette=inspected.palette, source=inspected.color_source or "original"
            )
        return ProcessingResult(
            status="processed",
            blob_hash=inspected.hash,
            blob_data=BlobData(
                storage_path=storage_path,
                width=inspected.width,
                height=inspected.height,
                aspect_ratio=round(inspected.width / inspected.height, 5),
                orientation=orientation_for(inspected.width, inspected.height),
                file_size=len(image_bytes),
                mime_type=inspected.mime_type,
                exif_data=inspected.exif_data,
            ),
            color_data=color_data,
        )
