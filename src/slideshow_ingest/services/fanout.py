"""Renders one blob into per-device variants."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

from slideshow_ingest.domain.blobs import DeviceVariant, LayoutType, variant_id
from slideshow_ingest.services.blobs import ObjectStorage, VariantRepository
from slideshow_ingest.services.layouts import FanoutJob

_logger = logging.getLogger(__name__)

VARIANT_CONTENT_TYPE = "image/jpeg"


class ResizeClient(Protocol):
    """Interface for the resize/crop capability."""

    def render(self, image_bytes: bytes, width: int, height: int) -> bytes:
        """Return JPEG bytes cropped to cover exactly width x height."""


@dataclass(frozen=True)
class VariantFailure:
    """A single variant that could not be produced or recorded."""

    device: str
    layout: LayoutType
    error: str


@dataclass(frozen=True)
class FanoutReport:
    """Variants produced by a fan-out and the failures collected along the way."""

    variants: list[DeviceVariant] = field(default_factory=list)
    failures: list[VariantFailure] = field(default_factory=list)


def variant_path(device_id: str, blob_hash: str, layout: LayoutType) -> str:
    """Deterministic object path so re-rendering overwrites the same artifact."""
    return f"variants/{device_id}/{blob_hash}/{layout.value}.jpg"


@dataclass
class FanoutGenerator:
    """Executes render jobs concurrently and records each resulting variant."""

    resizer: ResizeClient
    storage: ObjectStorage
    variants: VariantRepository

    async def generate(
        self, blob_hash: str, image_bytes: bytes, jobs: list[FanoutJob]
    ) -> FanoutReport:
        """Render every job; one job failing does not stop the others."""
        outcomes = await asyncio.gather(
            *(self._run_job(blob_hash, image_bytes, job) for job in jobs),
            return_exceptions=True,
        )
        report = FanoutReport()
        for job, outcome in zip(jobs, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                _logger.error(
                    "Variant render failed",
                    extra={
                        "blob_hash": blob_hash,
                        "device": job.device.id,
                        "layout": job.layout.value,
                        "error": str(outcome),
                    },
                )
                report.failures.append(
                    VariantFailure(
                        device=job.device.id, layout=job.layout, error=str(outcome)
                    )
                )
            else:
                report.variants.append(outcome)
        _logger.info(
            "Fan-out finished: %s variants, %s failures",
            len(report.variants),
            len(report.failures),
            extra={"blob_hash": blob_hash},
        )
        return report

    async def _run_job(
        self, blob_hash: str, image_bytes: bytes, job: FanoutJob
    ) -> DeviceVariant:
        rendered = await asyncio.to_thread(
            self.resizer.render, image_bytes, job.width, job.height
        )
        path = variant_path(job.device.id, blob_hash, job.layout)
        stored_path = await asyncio.to_thread(
            self.storage.upload, path, rendered, VARIANT_CONTENT_TYPE
        )
        variant = DeviceVariant(
            id=variant_id(job.device.id, blob_hash, job.layout),
            device=job.device.id,
            blob_hash=blob_hash,
            width=job.width,
            height=job.height,
            orientation=job.orientation,
            layout_type=job.layout,
            storage_path=stored_path,
            file_size=len(rendered),
        )
        await asyncio.to_thread(self.variants.upsert_variant, variant)
        return variant
