"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from slideshow_ingest.adapters.google_photos_picker_client import HttpxPickerClient
from slideshow_ingest.adapters.openai_vision_client import OpenAIVisionClient
from slideshow_ingest.adapters.pillow_images import PillowImageCodec
from slideshow_ingest.adapters.supabase_blob_repository import SupabaseBlobRepository
from slideshow_ingest.adapters.supabase_device_repository import (
    SupabaseDeviceRepository,
)
from slideshow_ingest.adapters.supabase_picker_session_repository import (
    SupabasePickerSessionRepository,
)
from slideshow_ingest.adapters.supabase_source_repository import (
    SupabaseSourceRepository,
)
from slideshow_ingest.adapters.supabase_storage import SupabaseObjectStorage
from slideshow_ingest.adapters.supabase_variant_repository import (
    SupabaseVariantRepository,
)
from slideshow_ingest.config import Settings
from slideshow_ingest.services.background import BackgroundDispatcher
from slideshow_ingest.services.blobs import BlobService
from slideshow_ingest.services.enrichment import EnrichmentService
from slideshow_ingest.services.fanout import FanoutGenerator
from slideshow_ingest.services.ingestion import IngestionService
from slideshow_ingest.services.picker import PickerService
from slideshow_ingest.services.image_ingest import DeviceRepository, ImageIngestor
from slideshow_ingest.services.picker_import import PickerImportService
from slideshow_ingest.services.poller import PickerPoller


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    picker_service: PickerService
    picker_poller: PickerPoller
    blob_service: BlobService
    enrichment_service: EnrichmentService
    ingestion_service: IngestionService
    image_ingestor: ImageIngestor
    import_service: PickerImportService
    device_repository: DeviceRepository
    dispatcher: BackgroundDispatcher
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    blob_repository = SupabaseBlobRepository(supabase_client)
    variant_repository = SupabaseVariantRepository(supabase_client)
    source_repository = SupabaseSourceRepository(supabase_client)
    device_repository = SupabaseDeviceRepository(supabase_client)
    session_repository = SupabasePickerSessionRepository(
        supabase_client, default_polling=resolved_settings.default_polling
    )
    storage = SupabaseObjectStorage(supabase_client, resolved_settings.supabase_bucket)
    codec = PillowImageCodec()
    dispatcher = BackgroundDispatcher()

    picker_client = HttpxPickerClient.create(
        base_url=resolved_settings.picker_api_base,
        timeout_seconds=resolved_settings.http_timeout_seconds,
    )
    picker_service = PickerService(
        client=picker_client,
        repository=session_repository,
        default_polling=resolved_settings.default_polling,
    )
    picker_poller = PickerPoller(picker_service)
    blob_service = BlobService(
        blob_repository, variant_repository, source_repository, storage
    )
    vision_client = OpenAIVisionClient.create(resolved_settings.openai_api_key)
    enrichment_service = EnrichmentService(
        client=vision_client,
        blobs=blob_service,
        storage=storage,
        dispatcher=dispatcher,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    ingestion_service = IngestionService(
        blobs=blob_service,
        sources=source_repository,
        variants=variant_repository,
        enrichment=enrichment_service,
    )
    image_ingestor = ImageIngestor(
        inspector=codec,
        storage=storage,
        blobs=blob_service,
        sources=source_repository,
        ingestion=ingestion_service,
        fanout=FanoutGenerator(codec, storage, variant_repository),
        devices=device_repository,
    )
    import_service = PickerImportService(picker=picker_service, ingestor=image_ingestor)

    async def close_resources() -> None:
        picker_poller.stop_all()
        await dispatcher.drain()
        await picker_client.close()
        await vision_client.close()

    return AppContainer(
        settings=resolved_settings,
        picker_service=picker_service,
        picker_poller=picker_poller,
        blob_service=blob_service,
        enrichment_service=enrichment_service,
        ingestion_service=ingestion_service,
        image_ingestor=image_ingestor,
        import_service=import_service,
        device_repository=device_repository,
        dispatcher=dispatcher,
        close_resources=close_resources,
    )
