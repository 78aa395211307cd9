"""Completion handling for processed sources."""

import asyncio
import logging
from dataclasses import dataclass, field
from uuid import UUID

from slideshow_ingest.domain.blobs import (
    BlobAttributes,
    DeviceVariant,
    Source,
    SourceOutcome,
    SourceStatus,
    variant_id,
)
from slideshow_ingest.domain.errors import DuplicateContent, NotFoundError, ValidationError
from slideshow_ingest.domain.processing import ProcessingResult, ReportedVariant
from slideshow_ingest.services.blobs import BlobService, SourceRepository, VariantRepository
from slideshow_ingest.services.enrichment import EnrichmentService
from slideshow_ingest.services.fanout import VariantFailure

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionReport:
    """What a completion did; variant failures never fail the completion."""

    success: bool
    blob_hash: str | None
    outcome: SourceOutcome
    variants_recorded: int = 0
    variant_failures: list[VariantFailure] = field(default_factory=list)


@dataclass
class IngestionService:
    """Turns a processing result into blob, source and variant records."""

    blobs: BlobService
    sources: SourceRepository
    variants: VariantRepository
    enrichment: EnrichmentService

    def get_source(self, source_id: UUID) -> Source:
        source = self.sources.get_source(source_id)
        if source is None:
            raise NotFoundError("source", source_id)
        return source

    async def complete(self, source_id: UUID, result: ProcessingResult) -> CompletionReport:
        """Apply a processing result to a source.

        A duplicate result, or a processed result that loses the race to an
        identical upload, only marks the source ready. A new blob is analyzed
        in the background and its reported variants are recorded concurrently.
        A source that already finished is not touched again: a ready source
        reports its recorded outcome and a failed one is rejected.
        """
        source = self.get_source(source_id)
        if source.status is not SourceStatus.PENDING:
            return _finished_report(source)
        if result.status == "duplicate":
            return self._mark_duplicate(source_id, result.blob_hash)

        # Both fields are guaranteed by ProcessingResult validation.
        blob_hash = result.blob_hash or ""
        try:
            self._create_blob(source_id, result)
        except DuplicateContent as duplicate:
            return self._mark_duplicate(source_id, duplicate.blob_hash)

        self.sources.update_source(
            source_id,
            SourceStatus.READY,
            outcome=SourceOutcome.CREATED,
            blob_hash=blob_hash,
            completed=True,
        )
        self.enrichment.trigger(blob_hash)
        recorded, failures = await self._record_variants(blob_hash, result.variants)
        _logger.info(
            "Source processed",
            extra={
                "source_id": str(source_id),
                "blob_hash": blob_hash,
                "variants": recorded,
                "variant_failures": len(failures),
            },
        )
        return CompletionReport(
            success=True,
            blob_hash=blob_hash,
            outcome=SourceOutcome.CREATED,
            variants_recorded=recorded,
            variant_failures=failures,
        )

    def fail(self, source_id: UUID, message: str) -> None:
        """Record a processing failure reported for a source."""
        source = self.get_source(source_id)
        if source.status is not SourceStatus.PENDING:
            raise ValidationError(
                f"Source {source_id} already finished as {source.status.value}"
            )
        self.sources.update_source(
            source_id, SourceStatus.FAILED, status_message=message, completed=True
        )
        _logger.warning(
            "Source processing failed",
            extra={"source_id": str(source_id), "error": message},
        )

    def _create_blob(self, source_id: UUID, result: ProcessingResult) -> None:
        blob_hash = result.blob_hash or ""
        data = result.blob_data
        if data is None:
            raise DuplicateContent(blob_hash)
        attributes = BlobAttributes(
            storage_path=data.storage_path,
            width=data.width,
            height=data.height,
            aspect_ratio=data.aspect_ratio,
            orientation=data.orientation,
            file_size=data.file_size,
            mime_type=data.mime_type,
            exif_data=data.exif_data,
            color_palette=result.color_data.palette if result.color_data else None,
            color_source=result.color_data.source if result.color_data else None,
        )
        try:
            creation = self.blobs.create_if_absent(blob_hash, attributes)
        except Exception as exc:
            self.sources.update_source(
                source_id, SourceStatus.FAILED, status_message=str(exc), completed=True
            )
            raise
        if not creation.created:
            raise DuplicateContent(blob_hash)

    def _mark_duplicate(self, source_id: UUID, blob_hash: str | None) -> CompletionReport:
        self.sources.update_source(
            source_id,
            SourceStatus.READY,
            outcome=SourceOutcome.DUPLICATE,
            blob_hash=blob_hash,
            completed=True,
        )
        _logger.info(
            "Source resolved to existing blob",
            extra={"source_id": str(source_id), "blob_hash": blob_hash},
        )
        return CompletionReport(
            success=True, blob_hash=blob_hash, outcome=SourceOutcome.DUPLICATE
        )

    async def _record_variants(
        self, blob_hash: str, reported: list[ReportedVariant]
    ) -> tuple[int, list[VariantFailure]]:
        records = [_to_variant(blob_hash, item) for item in reported]
        outcomes = await asyncio.gather(
            *(asyncio.to_thread(self.variants.upsert_variant, record) for record in records),
            return_exceptions=True,
        )
        failures = []
        for record, outcome in zip(records, outcomes, strict=True):
            if isinstance(outcome, Exception):
                _logger.error(
                    "Failed to record variant",
                    extra={"variant_id": record.id, "error": str(outcome)},
                )
                failures.append(
                    VariantFailure(
                        device=record.device, layout=record.layout_type, error=str(outcome)
                    )
                )
            elif isinstance(outcome, BaseException):
                raise outcome
        return len(records) - len(failures), failures


def _finished_report(source: Source) -> CompletionReport:
    if source.status is not SourceStatus.READY:
        raise ValidationError(f"Source {source.id} already finished as {source.status.value}")
    return CompletionReport(
        success=True,
        blob_hash=source.blob_hash,
        outcome=source.outcome or SourceOutcome.CREATED,
    )


def _to_variant(blob_hash: str, reported: ReportedVariant) -> DeviceVariant:
    return DeviceVariant(
        id=variant_id(reported.device, blob_hash, reported.layout_type),
        device=reported.device,
        blob_hash=blob_hash,
        width=reported.width,
        height=reported.height,
        orientation=reported.orientation,
        layout_type=reported.layout_type,
        storage_path=reported.storage_path,
        file_size=reported.file_size,
    )
