"""Pydantic models for results reported by the processing worker."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from slideshow_ingest.domain.blobs import LayoutType, Orientation
from slideshow_ingest.domain.errors import ValidationError


class BlobData(BaseModel):
    """Geometry and format of a newly processed source image."""

    storage_path: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    aspect_ratio: float = Field(gt=0)
    orientation: Orientation
    file_size: int | None = Field(default=None, ge=0)
    mime_type: str | None = None
    exif_data: str | None = None


class ColorData(BaseModel):
    """Color palette summary extracted from the source image."""

    palette: str
    source: str


class ReportedVariant(BaseModel):
    """A device rendition the worker already stored."""

    device: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    orientation: Orientation
    layout_type: LayoutType = LayoutType.MONOTYCH
    storage_path: str
    file_size: int | None = Field(default=None, ge=0)


class ProcessingResult(BaseModel):
    """Structured result for one source, either freshly processed or a duplicate."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["processed", "duplicate"]
    blob_hash: str | None = Field(default=None, alias="blobHash", min_length=1)
    blob_data: BlobData | None = Field(default=None, alias="blobData")
    color_data: ColorData | None = Field(default=None, alias="colorData")
    variants: list[ReportedVariant] = Field(default_factory=list)

    @model_validator(mode="after")
    def _require_blob_fields(self) -> "ProcessingResult":
        if self.status == "processed":
            if self.blob_hash is None:
                raise ValueError("blobHash is required for processed results")
            if self.blob_data is None:
                raise ValueError("blobData is required for processed results")
        return self


def parse_processing_result(payload: dict[str, object]) -> ProcessingResult:
    """Validate a raw worker payload."""
    try:
        return ProcessingResult.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid processing result: {exc}") from exc
