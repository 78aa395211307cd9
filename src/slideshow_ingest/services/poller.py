"""Server-driven recurring poll for picker sessions."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from uuid import UUID

from slideshow_ingest.domain.picker import PickerState, PollResult
from slideshow_ingest.services.picker import PickerService

_logger = logging.getLogger(__name__)

PollCallback = Callable[[PollResult], Awaitable[None]]
FailureCallback = Callable[[UUID, Exception], Awaitable[None]]


@dataclass
class _PollHandle:
    access_token: str
    on_selected: PollCallback | None
    on_expired: PollCallback | None
    on_failed: FailureCallback | None
    task: asyncio.Task[None] | None = None


@dataclass
class PickerPoller:
    """Runs one cancelable timer task per session.

    Each tick sleeps for the session's poll interval and then awaits a single
    status check, so checks never overlap. When the server advises a new
    interval the timer task is replaced rather than adjusted in place.
    """

    picker_service: PickerService
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    _handles: dict[UUID, _PollHandle] = field(default_factory=dict, init=False)

    def start(  # noqa: PLR0913
        self,
        session_id: UUID,
        access_token: str,
        *,
        on_selected: PollCallback | None = None,
        on_expired: PollCallback | None = None,
        on_failed: FailureCallback | None = None,
    ) -> None:
        """Start polling a session, replacing any timer already bound to it."""
        self.stop(session_id)
        session = self.picker_service.get(session_id)
        handle = _PollHandle(
            access_token=access_token,
            on_selected=on_selected,
            on_expired=on_expired,
            on_failed=on_failed,
        )
        self._handles[session_id] = handle
        self._schedule(session_id, handle, session.polling_config.poll_interval_seconds)

    def stop(self, session_id: UUID) -> None:
        """Clear the timer for a session so it cannot fire again."""
        handle = self._handles.pop(session_id, None)
        if handle is None or handle.task is None:
            return
        if handle.task is not asyncio.current_task():
            handle.task.cancel()

    def stop_all(self) -> None:
        for session_id in list(self._handles):
            self.stop(session_id)

    def is_active(self, session_id: UUID) -> bool:
        return session_id in self._handles

    def _schedule(self, session_id: UUID, handle: _PollHandle, delay: float) -> None:
        handle.task = asyncio.create_task(
            self._tick(session_id, handle, delay),
            name=f"picker-poll-{session_id}",
        )

    async def _tick(self, session_id: UUID, handle: _PollHandle, delay: float) -> None:
        rescheduled = False
        try:
            while True:
                await self.sleep(delay)
                if self._handles.get(session_id) is not handle:
                    return
                try:
                    result = await self.picker_service.poll(
                        session_id, handle.access_token
                    )
                except Exception as exc:
                    _logger.warning(
                        "Picker poll failed; stopping",
                        extra={"session_id": str(session_id), "error": str(exc)},
                    )
                    self._release(session_id, handle)
                    if handle.on_failed is not None:
                        await self._notify(session_id, handle.on_failed(session_id, exc))
                    return

                if result.state is PickerState.EXPIRED:
                    self._release(session_id, handle)
                    if handle.on_expired is not None:
                        await self._notify(session_id, handle.on_expired(result))
                    return
                if result.state is PickerState.SELECTED:
                    self._release(session_id, handle)
                    if handle.on_selected is not None:
                        await self._notify(session_id, handle.on_selected(result))
                    return
                if result.polling_changed:
                    _logger.info(
                        "Rescheduling picker poll at %sms",
                        result.session.polling_config.poll_interval_ms,
                        extra={"session_id": str(session_id)},
                    )
                    self._schedule(
                        session_id,
                        handle,
                        result.session.polling_config.poll_interval_seconds,
                    )
                    rescheduled = True
                    return
        finally:
            # Whatever ended this task, a session it still owns must not look active.
            if not rescheduled:
                self._release(session_id, handle)

    def _release(self, session_id: UUID, handle: _PollHandle) -> None:
        # A newer start() may already own the slot.
        if self._handles.get(session_id) is handle:
            del self._handles[session_id]

    async def _notify(self, session_id: UUID, callback: Awaitable[None]) -> None:
        try:
            await callback
        except Exception:
            _logger.exception(
                "Picker poll callback failed", extra={"session_id": str(session_id)}
            )
