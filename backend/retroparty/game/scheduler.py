from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from .models import Room


logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(eq=False)
class TimerHandle:
    room_code: str
    kind: str
    due_at: int
    callback: Callable[[], None]
    token: str | None = None
    cancelled: bool = False
    _owner: set = field(default_factory=set, repr=False)

    def cancel(self) -> None:
        self.cancelled = True
        self._owner.discard(self)


class Scheduler:
    """Arms per-room timers on background tasks.

    Each handle lives in its room's ``timers`` set until it fires or is
    cancelled. A fired callback must still re-validate the room it targets:
    cancellation only stops callbacks that have not started yet.
    """

    def __init__(
        self,
        spawn: Callable | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._spawn = spawn
        self._sleep = sleep or time.sleep
        self.clock = clock

    def call_later(
        self,
        room: Room,
        delay_ms: int,
        kind: str,
        callback: Callable[[], None],
        token: str | None = None,
    ) -> TimerHandle:
        handle = TimerHandle(
            room_code=room.code,
            kind=kind,
            due_at=self.clock() + max(0, int(delay_ms)),
            callback=callback,
            token=token,
            _owner=room.timers,
        )
        room.timers.add(handle)
        self._start(handle)
        return handle

    def call_at(self, room: Room, due_at: int, kind: str, callback: Callable[[], None], token: str | None = None) -> TimerHandle:
        return self.call_later(room, due_at - self.clock(), kind, callback, token)

    def _start(self, handle: TimerHandle) -> None:
        if self._spawn is None:
            raise RuntimeError("Scheduler has no background task spawner")
        self._spawn(self._run, handle)

    def _run(self, handle: TimerHandle) -> None:
        delay = max(0, handle.due_at - self.clock())
        if delay:
            self._sleep(delay / 1000.0)
        self.fire(handle)

    def fire(self, handle: TimerHandle) -> None:
        if handle.cancelled:
            logger.debug(f"[timer-cancelled] room={handle.room_code} kind={handle.kind}")
            return
        handle.cancel()
        logger.debug(f"[timer-fire] room={handle.room_code} kind={handle.kind}")
        handle.callback()

    def cancel(self, room: Room, kind: str | None = None) -> int:
        targets = [h for h in room.timers if kind is None or h.kind == kind]
        for h in targets:
            h.cancel()
        return len(targets)

    def cancel_all(self, room: Room) -> int:
        return self.cancel(room)

    def pending(self, room: Room, kind: str | None = None) -> list[TimerHandle]:
        return sorted(
            (h for h in room.timers if kind is None or h.kind == kind),
            key=lambda h: h.due_at,
        )
