"""Domain models for remote photo picker sessions."""

import json
import re
from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum
from uuid import UUID

DEFAULT_POLL_INTERVAL_MS = 10_000
DEFAULT_LONG_POLL_TIMEOUT_MS = 60_000

_DURATION_PATTERN = re.compile(r"PT(\d+(?:\.\d+)?)([HMS])")
_UNIT_MS = {"H": 3_600_000, "M": 60_000, "S": 1_000}


def parse_duration(value: str | None) -> int | None:
    """Parse an ISO-8601 style duration (``PT10S``) into milliseconds."""
    if not value:
        return None
    match = _DURATION_PATTERN.fullmatch(value.strip())
    if match is None:
        return None
    amount = float(match.group(1))
    return round(amount * _UNIT_MS[match.group(2)])


class PickerState(StrEnum):
    """Lifecycle states of a picker session."""

    CREATED = "CREATED"
    POLLING = "POLLING"
    SELECTED = "SELECTED"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True)
class PollingConfig:
    """Server-advised polling cadence, in milliseconds."""

    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    long_poll_timeout_ms: int = DEFAULT_LONG_POLL_TIMEOUT_MS

    def refine(self, raw: dict[str, object] | None) -> "PollingConfig":
        """Return a copy updated from a remote ``pollingConfig`` payload.

        Values that are absent or unparsable leave the current value in place.
        """
        if not raw:
            return self
        interval = parse_duration(_as_str(raw.get("pollInterval")))
        timeout = parse_duration(_as_str(raw.get("longPollTimeout")))
        return replace(
            self,
            poll_interval_ms=interval or self.poll_interval_ms,
            long_poll_timeout_ms=timeout or self.long_poll_timeout_ms,
        )

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000

    def to_json(self) -> dict[str, int]:
        return {
            "poll_interval_ms": self.poll_interval_ms,
            "long_poll_timeout_ms": self.long_poll_timeout_ms,
        }

    @classmethod
    def from_json(
        cls, payload: dict[str, object] | str | None, default: "PollingConfig"
    ) -> "PollingConfig":
        if isinstance(payload, str):
            payload = json.loads(payload) if payload else None
        if not isinstance(payload, dict):
            return default
        interval = payload.get("poll_interval_ms")
        timeout = payload.get("long_poll_timeout_ms")
        return cls(
            poll_interval_ms=int(interval)
            if isinstance(interval, int | float)
            else default.poll_interval_ms,
            long_poll_timeout_ms=int(timeout)
            if isinstance(timeout, int | float)
            else default.long_poll_timeout_ms,
        )


@dataclass(frozen=True)
class PickerSession:
    """Locally persisted record of a remote picker session."""

    id: UUID
    user_id: str
    picker_session_id: str
    picker_uri: str
    media_items_set: bool
    polling_config: PollingConfig
    expire_time: datetime | None
    created_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expire_time is not None and self.expire_time <= now


@dataclass(frozen=True)
class RemoteSession:
    """Remote answer to a session create call."""

    id: str
    picker_uri: str
    polling_config: dict[str, object] | None
    expire_time: datetime | None


@dataclass(frozen=True)
class RemoteSessionStatus:
    """Remote answer to a session status poll."""

    media_items_set: bool
    polling_config: dict[str, object] | None = None
    expire_time: datetime | None = None


@dataclass(frozen=True)
class PickedMediaItem:
    """A media item the user selected in the picker."""

    id: str
    type: str
    base_url: str
    mime_type: str
    filename: str
    width: int | None = None
    height: int | None = None
    create_time: str | None = None

    @property
    def is_photo(self) -> bool:
        return self.type == "PHOTO"

    def download_url(self, width: int | None = None, height: int | None = None) -> str:
        """Return a fetchable URL; the bare base URL cannot be downloaded."""
        if width and height:
            return f"{self.base_url}=w{width}-h{height}"
        return f"{self.base_url}=d"


@dataclass(frozen=True)
class PollResult:
    """Outcome of a single status check."""

    state: PickerState
    session: PickerSession
    polling_changed: bool = False


def parse_timestamp(value: object) -> datetime | None:
    """Parse an RFC 3339 timestamp as returned by the picker API."""
    if not isinstance(value, str) or not value:
        return None
    cleaned = value.replace("Z", "+00:00")
    # Remote timestamps may carry nanoseconds; fromisoformat accepts at most 6 digits.
    cleaned = re.sub(r"(\.\d{6})\d+", r"\1", cleaned)
    try:
        return datetime.fromisoformat(cleaned)
    except ValueError:
        return None


def _as_str(value: object) -> str | None:
    return value if isinstance(value, str) else None
