"""Pillow-based image inspection and cover-crop rendering."""

import hashlib
import io
import json
from dataclasses import dataclass

from PIL import ExifTags, Image, ImageOps

from slideshow_ingest.services.fanout import ResizeClient
from slideshow_ingest.services.image_ingest import ImageInspector, InspectedImage

PALETTE_SIZE = 8
JPEG_QUALITY = 90
COLOR_SOURCE = "original"


@dataclass
class PillowImageCodec(ImageInspector, ResizeClient):
    """Decodes, fingerprints and resizes images with Pillow."""

    palette_size: int = PALETTE_SIZE
    jpeg_quality: int = JPEG_QUALITY

    def inspect(self, image_bytes: bytes) -> InspectedImage:
        """Decode an image and compute its canonical pixel hash.

        The hash covers decoded pixels after EXIF orientation is applied, so
        the same picture re-encoded or with edited metadata maps to one blob.
        """
        with Image.open(io.BytesIO(image_bytes)) as opened:
            mime_type = Image.MIME.get(opened.format or "", "image/jpeg")
            exif_data = _exif_json(opened)
            image = ImageOps.exif_transpose(opened).convert("RGB")
        width, height = image.size
        return InspectedImage(
            hash=pixel_hash(image),
            width=width,
            height=height,
            mime_type=mime_type,
            palette=json.dumps(dominant_colors(image, self.palette_size)),
            color_source=COLOR_SOURCE,
            exif_data=exif_data,
        )

    def render(self, image_bytes: bytes, width: int, height: int) -> bytes:
        """Scale and center-crop to cover exactly width x height."""
        with Image.open(io.BytesIO(image_bytes)) as opened:
            image = ImageOps.exif_transpose(opened).convert("RGB")
        fitted = ImageOps.fit(image, (width, height), Image.Resampling.LANCZOS)
        buffer = io.BytesIO()
        fitted.save(buffer, format="JPEG", quality=self.jpeg_quality)
        return buffer.getvalue()


def pixel_hash(image: Image.Image) -> str:
    """SHA-256 over mode, size and raw pixel bytes."""
    digest = hashlib.sha256()
    digest.update(image.mode.encode())
    digest.update(f"{image.width}x{image.height}".encode())
    digest.update(image.tobytes())
    return digest.hexdigest()


def dominant_colors(image: Image.Image, count: int) -> list[str]:
    """Hex colors of an adaptive palette, most frequent first."""
    thumbnail = image.copy()
    thumbnail.thumbnail((256, 256))
    quantized = thumbnail.quantize(colors=count, method=Image.Quantize.MEDIANCUT)
    palette = quantized.getpalette() or []
    colors = quantized.getcolors() or []
    ordered = sorted(colors, key=lambda entry: entry[0], reverse=True)
    result = []
    for _count, index in ordered:
        red, green, blue = palette[index * 3 : index * 3 + 3]
        result.append(f"#{red:02x}{green:02x}{blue:02x}")
    return result


def _exif_json(image: Image.Image) -> str | None:
    exif = image.getexif()
    if not exif:
        return None
    named = {
        ExifTags.TAGS.get(tag, str(tag)): value
        for tag, value in exif.items()
        if not isinstance(value, bytes)
    }
    return json.dumps(named, default=str) if named else None
