"""Tests for layout planning and variant fan-out."""

import asyncio

from slideshow_ingest.domain.blobs import Device, LayoutType, Orientation
from slideshow_ingest.services.fanout import FanoutGenerator, variant_path
from slideshow_ingest.services.layouts import assign_layouts, cell_size, plan_jobs
from tests.conftest import (
    FakeObjectStorage,
    FakeResizeClient,
    InMemoryDeviceRepository,
    InMemoryVariantRepository,
)

LANDSCAPE = Device(
    id="kitchen", name="Kitchen", width=1920, height=1080, orientation=Orientation.LANDSCAPE
)
ULTRAWIDE = Device(
    id="bar", name="Bar", width=3840, height=1080, orientation=Orientation.LANDSCAPE, gap=20
)
PORTRAIT = Device(
    id="hallway", name="Hallway", width=1080, height=1920, orientation=Orientation.PORTRAIT
)


def test_landscape_image_gets_single_layout() -> None:
    assert assign_layouts(LANDSCAPE, 4000, 3000) == [LayoutType.MONOTYCH]
    assert assign_layouts(PORTRAIT, 4000, 3000) == [LayoutType.MONOTYCH]


def test_portrait_image_on_landscape_device_is_paired() -> None:
    assert assign_layouts(LANDSCAPE, 3000, 4000) == [
        LayoutType.MONOTYCH,
        LayoutType.DIPTYCH,
    ]
    assert assign_layouts(PORTRAIT, 3000, 4000) == [LayoutType.MONOTYCH]


def test_narrow_image_on_wide_device_gets_triptych() -> None:
    assert assign_layouts(ULTRAWIDE, 1000, 2000) == [
        LayoutType.MONOTYCH,
        LayoutType.DIPTYCH,
        LayoutType.TRIPTYCH,
    ]


def test_cell_size_subtracts_gaps() -> None:
    assert cell_size(ULTRAWIDE, LayoutType.MONOTYCH) == (3840, 1080)
    assert cell_size(ULTRAWIDE, LayoutType.DIPTYCH) == (1910, 1080)
    assert cell_size(ULTRAWIDE, LayoutType.TRIPTYCH) == (1266, 1080)


def test_generate_writes_one_variant_per_job(
    devices: InMemoryDeviceRepository,
) -> None:
    storage = FakeObjectStorage()
    variants = InMemoryVariantRepository()
    generator = FanoutGenerator(FakeResizeClient(), storage, variants)
    jobs = plan_jobs(devices.list_devices(), 3000, 4000)

    report = asyncio.run(generator.generate("abc", b"image", jobs))

    assert report.failures == []
    assert sorted(v.id for v in report.variants) == [
        "hallway_abc_monotych",
        "kitchen_abc_diptych",
        "kitchen_abc_monotych",
    ]
    assert storage.objects[variant_path("kitchen", "abc", LayoutType.DIPTYCH)] == b"960x1080"
    assert variants.variants["kitchen_abc_diptych"].orientation is Orientation.PORTRAIT


def test_regenerating_overwrites_same_records(
    devices: InMemoryDeviceRepository,
) -> None:
    storage = FakeObjectStorage()
    variants = InMemoryVariantRepository()
    generator = FanoutGenerator(FakeResizeClient(), storage, variants)
    jobs = plan_jobs(devices.list_devices(), 4000, 3000)

    asyncio.run(generator.generate("abc", b"image", jobs))
    asyncio.run(generator.generate("abc", b"image", jobs))

    assert len(variants.variants) == 2
    assert len(storage.objects) == 2
    assert len(variants.writes) == 4


def test_failed_job_does_not_abort_siblings(
    devices: InMemoryDeviceRepository,
) -> None:
    variants = InMemoryVariantRepository(failing_devices={"hallway"})
    generator = FanoutGenerator(
        FakeResizeClient(failing_sizes={(960, 1080)}), FakeObjectStorage(), variants
    )
    jobs = plan_jobs(devices.list_devices(), 3000, 4000)

    report = asyncio.run(generator.generate("abc", b"image", jobs))

    assert [v.id for v in report.variants] == ["kitchen_abc_monotych"]
    failed = sorted((f.device, f.layout) for f in report.failures)
    assert failed == [
        ("hallway", LayoutType.MONOTYCH),
        ("kitchen", LayoutType.DIPTYCH),
    ]
