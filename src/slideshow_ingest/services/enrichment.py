"""AI enrichment of stored blobs."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from pydantic import ValidationError as PydanticValidationError

from slideshow_ingest.domain.analysis import ImageAnalysis
from slideshow_ingest.domain.errors import NotFoundError, RemoteServiceError
from slideshow_ingest.services.background import BackgroundDispatcher
from slideshow_ingest.services.blobs import BlobService, ObjectStorage
from slideshow_ingest.services.picker import utcnow

_logger = logging.getLogger(__name__)


def _nullable(schema: dict[str, object]) -> dict[str, object]:
    return {"anyOf": [schema, {"type": "null"}]}


def _strict_object(properties: dict[str, object]) -> dict[str, object]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


_STRING = {"type": "string"}
_HEX_LIST = {"type": "array", "items": _STRING}

ANALYSIS_SCHEMA: dict[str, object] = _strict_object(
    {
        "image_analysis": _strict_object(
            {
                "title": {
                    "type": "string",
                    "description": "A concise title (2-9 words) capturing the image.",
                },
                "description": {
                    "type": "string",
                    "description": "A concise, normalized description of the scene.",
                },
                "mood": {
                    "type": "string",
                    "description": "Emotional tone, e.g. Joyful, Serene, Melancholic.",
                },
                "time_of_day": {
                    "type": "string",
                    "description": "Estimated time, e.g. Golden Hour, Mid-day, Artificial.",
                },
                "composition": _strict_object(
                    {
                        "type": _STRING,
                        "clutter_score": {"type": "number", "minimum": 0.0, "maximum": 1.0},
                    }
                ),
                "colors": _strict_object(
                    {"dominant_hex": _HEX_LIST, "accent_hex": _HEX_LIST}
                ),
            }
        ),
        "directionality": _strict_object(
            {
                "score": {"type": "number", "minimum": -1.0, "maximum": 1.0},
                "reasoning": _STRING,
            }
        ),
        "identities": {
            "type": "array",
            "items": _strict_object(
                {
                    "type": {"type": "string", "enum": ["Person", "Pet", "Other"]},
                    "demographics": _STRING,
                    "facial_structure": _strict_object(
                        {
                            "face_shape": _STRING,
                            "complexion_description": _STRING,
                            "eye_characteristics": _STRING,
                            "nose_structure": _STRING,
                            "cheek_chin_structure": _nullable(_STRING),
                        }
                    ),
                    "transient_features": _strict_object(
                        {
                            "hair_style": _nullable(_STRING),
                            "eyewear": _nullable(_STRING),
                            "facial_hair": _nullable(_STRING),
                        }
                    ),
                }
            ),
        },
        "smart_crop": _strict_object(
            {
                "regions_of_interest": {
                    "type": "array",
                    "items": _strict_object(
                        {
                            "label": _STRING,
                            "box_2d": {
                                "type": "array",
                                "description": "[ymin, xmin, ymax, xmax] normalized 0-1.",
                                "items": {"type": "number", "minimum": 0.0, "maximum": 1.0},
                                "minItems": 4,
                                "maxItems": 4,
                            },
                            "importance_rank": {"type": "integer", "minimum": 1},
                            "saliency_score": {
                                "type": "number",
                                "minimum": 0.0,
                                "maximum": 1.0,
                            },
                        }
                    ),
                }
            }
        ),
    }
)

ANALYSIS_INSTRUCTIONS = """\
You are an aesthetic analysis engine for a smart display slideshow.

Smart crop: rank regions by focus. Rank 1 is the focal point (eyes for people
and animals, the peak or a single flower for landscapes), rank 2 the head or
primary subject boundary, rank 3 the upper body or immediate context, rank 5
the full environment. Boxes are [ymin, xmin, ymax, xmax] normalized to 0-1.

Directionality: -1.0 is strong movement or gaze to the left, 0.0 head-on or
static, 1.0 strong movement or gaze to the right.

People: describe permanent structure (face shape, eye and nose shape,
complexion) in facial_structure. Hair, glasses and beards go in
transient_features.

Composition and color: give normalized descriptions and hex codes that help
pair images side by side."""


class VisionClient(Protocol):
    """Interface for LLM image analysis."""

    async def analyze(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_url: str,
        schema: dict[str, object],
        instructions: str,
    ) -> dict[str, object]:
        """Return structured analysis data for an image URL."""


@dataclass(frozen=True)
class ReanalysisSummary:
    analyzed: int
    skipped: int
    failed: int


@dataclass
class EnrichmentService:
    """Attaches AI-derived descriptive metadata to blobs."""

    client: VisionClient
    blobs: BlobService
    storage: ObjectStorage
    dispatcher: BackgroundDispatcher
    model: str
    reasoning_effort: str | None
    store: bool
    clock: Callable[[], datetime] = utcnow

    def trigger(self, blob_hash: str) -> None:
        """Start analysis in the background; the caller never waits on it."""
        self.dispatcher.launch(self.analyze(blob_hash), name=f"enrich-{blob_hash}")

    async def analyze(self, blob_hash: str) -> ImageAnalysis | None:
        """Analyze a blob and store the result.

        Returns None when the vision call or its output is unusable; the blob
        is left unanalyzed so a later batch run picks it up again.
        """
        blob = self.blobs.resolve(blob_hash)
        if blob is None:
            raise NotFoundError("blob", blob_hash)
        image_url = self.storage.public_url(blob.storage_path)
        try:
            raw = await self.client.analyze(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                image_url=image_url,
                schema=ANALYSIS_SCHEMA,
                instructions=ANALYSIS_INSTRUCTIONS,
            )
            analysis = ImageAnalysis.model_validate(raw)
        except RemoteServiceError:
            _logger.exception("Vision analysis failed", extra={"blob_hash": blob_hash})
            return None
        except PydanticValidationError:
            _logger.exception(
                "Vision analysis returned invalid output",
                extra={"blob_hash": blob_hash},
            )
            return None

        self.blobs.update(
            blob_hash,
            {
                "title": analysis.image_analysis.title,
                "description": analysis.image_analysis.description,
                "analysis": analysis.model_dump(mode="json"),
                "analyzed_at": self.clock(),
            },
        )
        _logger.info("Stored image analysis", extra={"blob_hash": blob_hash})
        return analysis

    def clear_analysis(self, blob_hash: str) -> None:
        """Mark a blob as not yet analyzed."""
        self.blobs.update(blob_hash, {"analysis": None, "analyzed_at": None})

    async def reanalyze_all(self) -> ReanalysisSummary:
        """Analyze every blob lacking an analysis, one at a time."""
        analyzed = skipped = failed = 0
        for blob in self.blobs.list_blobs():
            if blob.is_analyzed:
                skipped += 1
                continue
            try:
                result = await self.analyze(blob.hash)
            except Exception:
                _logger.exception("Re-analysis failed", extra={"blob_hash": blob.hash})
                result = None
            if result is None:
                failed += 1
            else:
                analyzed += 1
        _logger.info(
            "Re-analysis finished: %s analyzed, %s skipped, %s failed",
            analyzed,
            skipped,
            failed,
        )
        return ReanalysisSummary(analyzed=analyzed, skipped=skipped, failed=failed)
