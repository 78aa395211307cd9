"""Imports the photos selected in a picker session."""

import logging
from dataclasses import dataclass, field
from functools import partial
from uuid import UUID

from slideshow_ingest.domain.errors import SessionExpiredError, ValidationError
from slideshow_ingest.domain.picker import PickerState
from slideshow_ingest.services.image_ingest import ImageIngestor, ImportDetail
from slideshow_ingest.services.picker import PickerService

_logger = logging.getLogger(__name__)

SOURCE_ORIGIN = "google_photos"


@dataclass(frozen=True)
class ImportSummary:
    total: int
    ingested: int
    skipped: int
    failed: int
    details: list[ImportDetail] = field(default_factory=list)


def summarize(details: list[ImportDetail], total: int) -> ImportSummary:
    return ImportSummary(
        total=total,
        ingested=sum(1 for detail in details if detail.status in {"created", "duplicate"}),
        skipped=sum(1 for detail in details if detail.status == "skipped"),
        failed=sum(1 for detail in details if detail.status == "failed"),
        details=details,
    )


@dataclass
class PickerImportService:
    """Downloads selected photos and routes them through completion handling."""

    picker: PickerService
    ingestor: ImageIngestor

    async def import_session(self, session_id: UUID, access_token: str) -> ImportSummary:
        """Ingest every photo of a selected session, then drop the session.

        Items are handled one after another; a failing item is recorded and
        the rest continue. The session is dropped even if the run is cut short.
        """
        poll = await self.picker.poll(session_id, access_token)
        if poll.state is PickerState.EXPIRED:
            raise SessionExpiredError(str(session_id))
        if poll.state is not PickerState.SELECTED:
            raise ValidationError("No media items have been selected yet")

        try:
            items = await self.picker.list_selected_items(session_id, access_token)
            details: list[ImportDetail] = []
            for item in items:
                if not item.is_photo:
                    details.append(
                        ImportDetail(item_id=item.id, filename=item.filename, status="skipped")
                    )
                    continue
                details.append(
                    await self.ingestor.ingest(
                        partial(self.picker.download, item, access_token),
                        origin=SOURCE_ORIGIN,
                        item_id=item.id,
                        filename=item.filename,
                        user_id=poll.session.user_id,
                        external_id=item.id,
                    )
                )
        finally:
            self.picker.delete(session_id)

        summary = summarize(details, total=len(items))
        _logger.info(
            "Picker import finished: %s ingested, %s skipped, %s failed",
            summary.ingested,
            summary.skipped,
            summary.failed,
            extra={"session_id": str(session_id)},
        )
        return summary
