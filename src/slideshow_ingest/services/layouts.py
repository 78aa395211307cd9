"""Placement policy deciding which layouts each device receives."""

from dataclasses import dataclass

from slideshow_ingest.domain.blobs import Device, LayoutType, Orientation, orientation_for

# A device this many times wider (relative to the image aspect) fits three images.
_TRIPTYCH_ASPECT_FACTOR = 2.5


@dataclass(frozen=True)
class FanoutJob:
    """One rendition to produce for a device."""

    device: Device
    layout: LayoutType
    width: int
    height: int

    @property
    def orientation(self) -> Orientation:
        return orientation_for(self.width, self.height)


def assign_layouts(device: Device, blob_width: int, blob_height: int) -> list[LayoutType]:
    """Return the layouts an image should be rendered in for a device.

    Every device gets a full-screen rendition. Portrait images shown on a
    landscape device are also prepared as a side-by-side cell, and narrow
    enough images as a third-of-screen cell.
    """
    layouts = [LayoutType.MONOTYCH]
    if blob_width <= 0 or blob_height <= 0 or device.height <= 0:
        return layouts
    image_orientation = orientation_for(blob_width, blob_height)
    device_orientation = orientation_for(device.width, device.height)
    if (
        image_orientation is Orientation.PORTRAIT
        and device_orientation is Orientation.LANDSCAPE
    ):
        layouts.append(LayoutType.DIPTYCH)
        device_ratio = device.width / device.height
        image_ratio = blob_width / blob_height
        if device_ratio >= image_ratio * _TRIPTYCH_ASPECT_FACTOR:
            layouts.append(LayoutType.TRIPTYCH)
    return layouts


def cell_size(device: Device, layout: LayoutType) -> tuple[int, int]:
    """Pixel size of one image cell, honoring the device gap between cells."""
    cells = layout.cells
    usable = device.width - device.gap * (cells - 1)
    return max(usable // cells, 1), device.height


def plan_jobs(devices: list[Device], blob_width: int, blob_height: int) -> list[FanoutJob]:
    """Expand a device roster into render jobs."""
    jobs = []
    for device in devices:
        for layout in assign_layouts(device, blob_width, blob_height):
            width, height = cell_size(device, layout)
            jobs.append(FanoutJob(device=device, layout=layout, width=width, height=height))
    return jobs
