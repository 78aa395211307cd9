"""Domain models for content-addressed images and their derivatives."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

_SQUARE_TOLERANCE = 0.05


class Orientation(StrEnum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    SQUARE = "square"


class LayoutType(StrEnum):
    """Number of images sharing one device screen."""

    MONOTYCH = "monotych"
    DIPTYCH = "diptych"
    TRIPTYCH = "triptych"

    @property
    def cells(self) -> int:
        return {"monotych": 1, "diptych": 2, "triptych": 3}[self.value]


class SourceStatus(StrEnum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class SourceOutcome(StrEnum):
    """How a ready source resolved to its blob."""

    CREATED = "created"
    DUPLICATE = "duplicate"


def orientation_for(width: int, height: int) -> Orientation:
    """Classify pixel geometry, treating near-1:1 ratios as square."""
    if height <= 0:
        return Orientation.LANDSCAPE
    ratio = width / height
    if abs(ratio - 1) < _SQUARE_TOLERANCE:
        return Orientation.SQUARE
    if width > height:
        return Orientation.LANDSCAPE
    return Orientation.PORTRAIT


def variant_id(device_id: str, blob_hash: str, layout: LayoutType | str) -> str:
    """Deterministic key for the authoritative variant of (device, blob, layout)."""
    return f"{device_id}_{blob_hash}_{LayoutType(layout).value}"


@dataclass(frozen=True)
class BlobAttributes:
    """Geometry, format and color fields recorded when a blob is created."""

    storage_path: str
    width: int
    height: int
    aspect_ratio: float
    orientation: Orientation
    file_size: int | None = None
    mime_type: str | None = None
    exif_data: str | None = None
    color_palette: str | None = None
    color_source: str | None = None


@dataclass(frozen=True)
class Blob:
    """A unique stored image identified by the hash of its pixels."""

    hash: str
    storage_path: str
    width: int
    height: int
    aspect_ratio: float
    orientation: Orientation
    file_size: int | None = None
    mime_type: str | None = None
    exif_data: str | None = None
    color_palette: str | None = None
    color_source: str | None = None
    title: str | None = None
    description: str | None = None
    analysis: dict[str, object] | None = None
    analyzed_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def is_analyzed(self) -> bool:
        return bool(self.analysis)


@dataclass(frozen=True)
class Source:
    """One ingestion attempt that resolves to a blob."""

    id: UUID
    origin: str
    status: SourceStatus
    user_id: str | None = None
    external_id: str | None = None
    outcome: SourceOutcome | None = None
    status_message: str | None = None
    blob_hash: str | None = None
    ingested_at: datetime | None = None
    processed_at: datetime | None = None


@dataclass(frozen=True)
class DeviceVariant:
    """A rendition of a blob sized for one device and layout."""

    id: str
    device: str
    blob_hash: str
    width: int
    height: int
    orientation: Orientation
    layout_type: LayoutType
    storage_path: str
    file_size: int | None = None
    processed_at: datetime | None = None


@dataclass(frozen=True)
class Device:
    """A registered display; owned by the device registry."""

    id: str
    name: str
    width: int
    height: int
    orientation: Orientation
    gap: int = 0
    last_seen: datetime | None = None
