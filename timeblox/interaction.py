"""Drag / resize gesture tracking and long-press detection.

Pointer positions are given in minutes from midnight; front ends convert
from pixels (or key presses) before calling in. Preview computations are
pure functions of the pointer and may run on every input event.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol, Sequence

from timeblox.blocks import (
    BreakIn,
    Schedule,
    clamp_resize,
    clamp_start,
    find_collision,
    move_block,
    resize_block,
    sort_blocks,
)
from timeblox.clock import DRAG_SNAP_MINUTES, snap
from timeblox.models import MIN_BLOCK_MINUTES, TimeBlock

logger = logging.getLogger(__name__)

LONG_PRESS_SECONDS = 0.7


class GestureState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"


@dataclass(frozen=True)
class Squish:
    """Preview of the collided block shrunk to what a break-in leaves of it."""

    index: int
    start: int
    end: int


@dataclass(frozen=True)
class Preview:
    index: int
    start: int
    end: int
    collision: int | None = None
    squish: Squish | None = None


@dataclass(frozen=True)
class GestureOutcome:
    """What releasing (or cancelling) a gesture produced.

    *schedule* is the schedule to install. When *break_in* is set, or the
    gesture was cancelled or rejected, it is the unchanged original.
    """

    kind: str  # drag, resize, cancelled
    schedule: Schedule
    break_in: BreakIn | None = None
    rejected: bool = False

    @property
    def changed(self) -> bool:
        return self.kind != "cancelled" and self.break_in is None and not self.rejected


class GestureTracker:
    """Two-state gesture machine: Idle -> Dragging | Resizing -> Idle.

    Only one gesture may be active; starting another while one is in
    progress is ignored.
    """

    def __init__(self, on_tick: Callable[[int], Any] | None = None) -> None:
        self.on_tick = on_tick
        self._reset()

    def _reset(self) -> None:
        self.state = GestureState.IDLE
        self.preview: Preview | None = None
        self._schedule: Schedule = ()
        self._index = -1
        self._handle = ""
        self._origin = 0.0
        self._grab_offset = 0.0
        self._initial_start = 0
        self._initial_end = 0
        self._last_snapped: int | None = None

    @property
    def active(self) -> bool:
        return self.state is not GestureState.IDLE

    def _begin(self, schedule: Sequence[TimeBlock], index: int) -> TimeBlock:
        self._schedule = sort_blocks(schedule)
        if not 0 <= index < len(self._schedule):
            raise IndexError(f"Block index out of range: {index}")
        item = self._schedule[index]
        self._index = index
        self._initial_start = item.start_minutes
        self._initial_end = item.end_minutes
        self.preview = Preview(index, self._initial_start, self._initial_end)
        return item

    def begin_drag(
        self,
        schedule: Sequence[TimeBlock],
        index: int,
        pointer: float,
        grab_offset: float | None = None,
    ) -> bool:
        """Grab a block. *grab_offset* is where inside the block the pointer
        sits (defaults to pointer - block start)."""
        if self.active:
            return False
        item = self._begin(schedule, index)
        self._origin = pointer
        self._grab_offset = pointer - item.start_minutes if grab_offset is None else grab_offset
        self.state = GestureState.DRAGGING
        logger.debug("Drag started on block %d", index)
        return True

    def begin_resize(self, schedule: Sequence[TimeBlock], index: int, handle: str, pointer: float) -> bool:
        if self.active:
            return False
        if handle not in ("top", "bottom"):
            raise ValueError(f"Invalid resize handle: {handle!r}")
        self._begin(schedule, index)
        self._origin = pointer
        self._handle = handle
        self.state = GestureState.RESIZING
        logger.debug("Resize (%s) started on block %d", handle, index)
        return True

    def _tick(self, value: int) -> None:
        if value == self._last_snapped:
            return
        self._last_snapped = value
        if self.on_tick is not None:
            self.on_tick(value)

    def update(self, pointer: float) -> Preview | None:
        """Recompute the preview for a new pointer position."""
        if self.state is GestureState.DRAGGING:
            self.preview = self._drag_preview(pointer)
        elif self.state is GestureState.RESIZING:
            self.preview = self._resize_preview(pointer)
        return self.preview

    def _drag_preview(self, pointer: float) -> Preview:
        duration = self._initial_end - self._initial_start
        start = clamp_start(snap(pointer - self._grab_offset, DRAG_SNAP_MINUTES), duration)
        end = start + duration
        self._tick(start)

        collision = find_collision(self._schedule, self._index, start, end)
        squish = None
        if collision is not None:
            target_start = self._schedule[collision].start_minutes
            if start - target_start >= MIN_BLOCK_MINUTES:
                squish = Squish(collision, target_start, start)
        return Preview(self._index, start, end, collision, squish)

    def _resize_preview(self, pointer: float) -> Preview:
        delta = snap(pointer - self._origin, DRAG_SNAP_MINUTES)
        edge = (self._initial_start if self._handle == "top" else self._initial_end) + delta
        start, end = clamp_resize(self._schedule, self._index, self._handle, edge)
        self._tick(start if self._handle == "top" else end)
        return Preview(self._index, start, end)

    def release(self, valid_target: bool = True) -> GestureOutcome | None:
        """Commit the gesture. Releasing outside a valid target cancels it."""
        if not self.active:
            return None
        if not valid_target or self.preview is None:
            return self.cancel()
        schedule, index, preview = self._schedule, self._index, self.preview
        if self.state is GestureState.RESIZING:
            edge = preview.start if self._handle == "top" else preview.end
            outcome = GestureOutcome("resize", resize_block(schedule, index, self._handle, edge))
        else:
            result = move_block(schedule, index, preview.start)
            outcome = GestureOutcome("drag", result.schedule, result.break_in, result.rejected)
        self._reset()
        return outcome

    def cancel(self) -> GestureOutcome | None:
        """Discard the preview without touching the schedule."""
        if not self.active:
            return None
        outcome = GestureOutcome("cancelled", self._schedule)
        logger.debug("Gesture on block %d cancelled", self._index)
        self._reset()
        return outcome


# ── Long press ────────────────────────────────────────────────


class TimerHandle(Protocol):
    def cancel(self) -> Any: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def thread_timer(delay: float, callback: Callable[[], None]) -> TimerHandle:
    t = threading.Timer(delay, callback)
    t.daemon = True
    t.start()
    return t


class LongPressTimer:
    """Cancellable press-and-hold detector.

    press() acquires a timer; any move or release calls cancel(). At most one
    action fires per press, and a new press always cancels the previous one.
    """

    def __init__(self, delay: float = LONG_PRESS_SECONDS, timer_factory: TimerFactory | None = None) -> None:
        self.delay = delay
        self._factory = timer_factory or thread_timer
        self._handle: TimerHandle | None = None
        self._token: object | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def press(self, callback: Callable[[], None]) -> None:
        self.cancel()
        token = object()

        def fire() -> None:
            if self._token is not token:
                return
            self._token = None
            self._handle = None
            callback()

        self._token = token
        handle = self._factory(self.delay, fire)
        if self._token is token:
            self._handle = handle

    def cancel(self) -> bool:
        """Release the timer. Returns True if a pending press was cancelled."""
        if self._handle is None:
            return False
        handle, self._handle, self._token = self._handle, None, None
        handle.cancel()
        return True
