"""Tests for the picker session state machine."""

import asyncio
from dataclasses import replace
from datetime import timedelta
from uuid import uuid4

import pytest

from slideshow_ingest.domain.errors import NotFoundError, RemoteServiceError
from slideshow_ingest.domain.picker import PickerState, PollingConfig
from slideshow_ingest.services.picker import PickerService
from tests.conftest import (
    NOW,
    FakePickerClient,
    InMemoryPickerSessionRepository,
    media_item,
)


def test_create_persists_autoclose_uri_and_polling(
    picker_service: PickerService, session_repository: InMemoryPickerSessionRepository
) -> None:
    session = asyncio.run(picker_service.create("user-1", "token"))

    assert session.picker_uri == "https://photos.google.com/picker/remote-1/autoclose"
    assert session.picker_session_id == "remote-1"
    assert session.polling_config == PollingConfig(
        poll_interval_ms=5_000, long_poll_timeout_ms=30_000
    )
    assert session.expire_time == NOW + timedelta(hours=1)
    assert session_repository.get_session(session.id) == session


def test_create_falls_back_to_default_polling(
    picker_client: FakePickerClient, picker_service: PickerService
) -> None:
    picker_client.create_payload = {
        "id": "remote-2",
        "pickerUri": "https://picker/remote-2",
        "pollingConfig": {"pollInterval": "whenever"},
    }

    session = asyncio.run(picker_service.create("user-1", "token"))

    assert session.polling_config == PollingConfig()
    assert session.expire_time is None


def test_create_sweeps_expired_sessions_first(
    picker_service: PickerService, session_repository: InMemoryPickerSessionRepository
) -> None:
    stale = session_repository.create_session(
        "user-1", "old", "https://picker/old", PollingConfig(), NOW - timedelta(minutes=1)
    )

    asyncio.run(picker_service.create("user-1", "token"))

    assert session_repository.get_session(stale.id) is None


def test_create_survives_failing_sweep(
    picker_service: PickerService, session_repository: InMemoryPickerSessionRepository
) -> None:
    session_repository.fail_sweep = True

    session = asyncio.run(picker_service.create("user-1", "token"))

    assert session_repository.get_session(session.id) is not None


def test_create_propagates_remote_rejection(
    picker_client: FakePickerClient, picker_service: PickerService
) -> None:
    picker_client.reject_create = True

    with pytest.raises(RemoteServiceError):
        asyncio.run(picker_service.create("user-1", "token"))


def test_poll_unknown_session_raises(picker_service: PickerService) -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(picker_service.poll(uuid4(), "token"))


def test_poll_reports_polling_until_selection(
    picker_client: FakePickerClient, picker_service: PickerService
) -> None:
    session = asyncio.run(picker_service.create("user-1", "token"))
    picker_client.statuses = [
        {"mediaItemsSet": False},
        {"mediaItemsSet": True},
    ]

    first = asyncio.run(picker_service.poll(session.id, "token"))
    second = asyncio.run(picker_service.poll(session.id, "token"))

    assert first.state is PickerState.POLLING
    assert second.state is PickerState.SELECTED
    assert picker_service.get(session.id).media_items_set


def test_local_expiry_wins_over_selection(
    picker_client: FakePickerClient,
    picker_service: PickerService,
    session_repository: InMemoryPickerSessionRepository,
) -> None:
    session = asyncio.run(picker_service.create("user-1", "token"))
    session_repository.sessions[session.id] = replace(
        session, expire_time=NOW - timedelta(seconds=1)
    )
    picker_client.statuses = [{"mediaItemsSet": True}]

    result = asyncio.run(picker_service.poll(session.id, "token"))

    assert result.state is PickerState.EXPIRED
    assert picker_client.polled == 0


def test_remote_gone_means_expired(
    picker_client: FakePickerClient, picker_service: PickerService
) -> None:
    session = asyncio.run(picker_service.create("user-1", "token"))
    picker_client.statuses = [None]

    result = asyncio.run(picker_service.poll(session.id, "token"))

    assert result.state is PickerState.EXPIRED


def test_remote_expiry_in_past_means_expired(
    picker_client: FakePickerClient, picker_service: PickerService
) -> None:
    session = asyncio.run(picker_service.create("user-1", "token"))
    picker_client.statuses = [
        {"mediaItemsSet": True, "expireTime": "2025-06-01T11:00:00Z"}
    ]

    result = asyncio.run(picker_service.poll(session.id, "token"))

    assert result.state is PickerState.EXPIRED


def test_poll_records_changed_polling_config(
    picker_client: FakePickerClient,
    picker_service: PickerService,
    session_repository: InMemoryPickerSessionRepository,
) -> None:
    session = asyncio.run(picker_service.create("user-1", "token"))
    picker_client.statuses = [
        {"mediaItemsSet": False, "pollingConfig": {"pollInterval": "PT2S"}}
    ]

    result = asyncio.run(picker_service.poll(session.id, "token"))

    assert result.polling_changed
    assert result.session.polling_config.poll_interval_ms == 2_000
    assert session_repository.sessions[session.id].polling_config.poll_interval_ms == 2_000


def test_unchanged_poll_does_not_write(
    picker_client: FakePickerClient,
    picker_service: PickerService,
    session_repository: InMemoryPickerSessionRepository,
) -> None:
    session = asyncio.run(picker_service.create("user-1", "token"))
    picker_client.statuses = [
        {"mediaItemsSet": False, "pollingConfig": {"pollInterval": "PT5S"}}
    ]

    result = asyncio.run(picker_service.poll(session.id, "token"))

    assert not result.polling_changed
    assert session_repository.updates == []


def test_list_selected_items_follows_page_tokens(
    picker_client: FakePickerClient, picker_service: PickerService
) -> None:
    session = asyncio.run(picker_service.create("user-1", "token"))
    picker_client.pages = [
        {
            "mediaItems": [media_item("a", "https://lh3/a")],
            "nextPageToken": "page-2",
        },
        {"mediaItems": [media_item("b", "https://lh3/b", item_type="VIDEO")]},
    ]

    items = asyncio.run(picker_service.list_selected_items(session.id, "token"))

    assert [item.id for item in items] == ["a", "b"]
    assert picker_client.page_tokens == [None, "page-2"]
    assert items[0].width == 4000
    assert not items[1].is_photo


def test_download_uses_original_size_url(
    picker_client: FakePickerClient, picker_service: PickerService
) -> None:
    session = asyncio.run(picker_service.create("user-1", "token"))
    picker_client.pages = [{"mediaItems": [media_item("a", "https://lh3/a")]}]
    picker_client.downloads["https://lh3/a=d"] = b"original"
    items = asyncio.run(picker_service.list_selected_items(session.id, "token"))

    content = asyncio.run(picker_service.download(items[0], "token"))

    assert content == b"original"


def test_delete_removes_local_record(picker_service: PickerService) -> None:
    session = asyncio.run(picker_service.create("user-1", "token"))

    assert picker_service.delete(session.id)
    assert not picker_service.delete(session.id)
    with pytest.raises(NotFoundError):
        picker_service.get(session.id)
