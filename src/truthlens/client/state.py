"""Interaction state machine driving the selection overlay."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Protocol, Sequence

from truthlens.client.sources import ChunkSource

LOGGER = logging.getLogger(__name__)

MIN_SELECTION_LENGTH = 10
DEBOUNCE_SECONDS = 0.05
ANCHOR_MARGIN = 2.0


class UIState(str, Enum):
    IDLE = "IDLE"
    BUBBLE = "BUBBLE"
    ACTION_BAR = "ACTION_BAR"
    LOADING = "LOADING"
    PANEL = "PANEL"


class UIEvent(str, Enum):
    SELECT = "SELECT"
    POINTER_ENTER = "POINTER_ENTER"
    POINTER_LEAVE = "POINTER_LEAVE"
    ANALYZE = "ANALYZE"
    STREAM_OPEN = "STREAM_OPEN"
    OUTSIDE_POINTER_DOWN = "OUTSIDE_POINTER_DOWN"
    CLOSE = "CLOSE"


TRANSITIONS: Mapping[tuple[UIState, UIEvent], UIState] = {
    (UIState.IDLE, UIEvent.SELECT): UIState.BUBBLE,
    (UIState.BUBBLE, UIEvent.SELECT): UIState.BUBBLE,
    (UIState.ACTION_BAR, UIEvent.SELECT): UIState.BUBBLE,
    (UIState.BUBBLE, UIEvent.POINTER_ENTER): UIState.ACTION_BAR,
    (UIState.ACTION_BAR, UIEvent.POINTER_LEAVE): UIState.BUBBLE,
    (UIState.ACTION_BAR, UIEvent.ANALYZE): UIState.LOADING,
    (UIState.LOADING, UIEvent.STREAM_OPEN): UIState.PANEL,
    (UIState.BUBBLE, UIEvent.OUTSIDE_POINTER_DOWN): UIState.IDLE,
    (UIState.ACTION_BAR, UIEvent.OUTSIDE_POINTER_DOWN): UIState.IDLE,
    **{(state, UIEvent.CLOSE): UIState.IDLE for state in UIState},
}


def transition(state: UIState, event: UIEvent) -> UIState | None:
    """Return the next state, or None when ``event`` is not accepted in ``state``."""

    return TRANSITIONS.get((state, event))


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    right: float
    bottom: float


@dataclass(frozen=True)
class SelectionSnapshot:
    """What the host page reports about its current native selection."""

    text: str
    rects: Sequence[Rect]
    scroll_x: float = 0.0
    scroll_y: float = 0.0


@dataclass(frozen=True)
class Selection:
    text: str
    anchor: Point


@dataclass(frozen=True)
class UISnapshot:
    state: UIState
    selection: Selection | None
    result: str
    streaming: bool


class SelectionHost(Protocol):
    """Page-side hooks the machine needs."""

    def read_selection(self) -> SelectionSnapshot | None:
        ...

    def clear_selection(self) -> None:
        ...


class Dispatcher(Protocol):
    async def open(self, text: str) -> ChunkSource:
        ...


Listener = Callable[[UISnapshot], None]


def anchor_for(snapshot: SelectionSnapshot, margin: float = ANCHOR_MARGIN) -> Point | None:
    """Page coordinates just past the end of the selection's last line box."""

    if not snapshot.rects:
        return None
    last = snapshot.rects[-1]
    return Point(x=last.right + snapshot.scroll_x + margin, y=last.bottom + snapshot.scroll_y + margin)


class InteractionStateMachine:
    """Owns the live Selection and result buffer and reacts to pointer events.

    Events are applied through ``TRANSITIONS``; anything not listed there is
    ignored. The response is read by a single reader task, which ``close``
    and a new ``analyze`` cancel so only one writer ever touches the buffer.
    """

    def __init__(
        self,
        host: SelectionHost,
        dispatcher: Dispatcher,
        *,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        min_selection_length: int = MIN_SELECTION_LENGTH,
        anchor_margin: float = ANCHOR_MARGIN,
    ) -> None:
        self._host = host
        self._dispatcher = dispatcher
        self._debounce = debounce_seconds
        self._min_length = min_selection_length
        self._margin = anchor_margin
        self._state = UIState.IDLE
        self._selection: Selection | None = None
        self._result = ""
        self._reader: asyncio.Task[None] | None = None
        self._listeners: list[Listener] = []

    @property
    def state(self) -> UIState:
        return self._state

    @property
    def selection(self) -> Selection | None:
        return self._selection

    @property
    def result(self) -> str:
        return self._result

    @property
    def streaming(self) -> bool:
        return self._reader is not None and not self._reader.done()

    def snapshot(self) -> UISnapshot:
        return UISnapshot(state=self._state, selection=self._selection, result=self._result, streaming=self.streaming)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def pointer_up(self, *, inside_overlay: bool = False) -> None:
        if inside_overlay:
            return
        # Let the native selection settle before reading it.
        await asyncio.sleep(self._debounce)
        snapshot = self._host.read_selection()
        if snapshot is None:
            return
        text = snapshot.text.strip()
        if len(text) < self._min_length:
            return
        anchor = anchor_for(snapshot, self._margin)
        if anchor is None:
            return
        if transition(self._state, UIEvent.SELECT) is None:
            LOGGER.debug("Ignoring selection while %s", self._state.value)
            return
        self._selection = Selection(text=text, anchor=anchor)
        self._fire(UIEvent.SELECT)

    def pointer_down(self, *, inside_overlay: bool = False) -> None:
        if inside_overlay:
            return
        if self._fire(UIEvent.OUTSIDE_POINTER_DOWN):
            self._host.clear_selection()
            self._discard()

    def pointer_enter(self) -> None:
        self._fire(UIEvent.POINTER_ENTER)

    def pointer_leave(self) -> None:
        self._fire(UIEvent.POINTER_LEAVE)

    async def analyze(self) -> None:
        """Dispatch the current selection and read the verdict until it ends or is closed."""

        selection = self._selection
        if selection is None or not self._fire(UIEvent.ANALYZE):
            return
        self._host.clear_selection()
        await self._cancel_reader()
        self._result = ""
        self._notify()
        reader = asyncio.create_task(self._read(selection.text))
        self._reader = reader
        try:
            await asyncio.wait({reader})
        except asyncio.CancelledError:
            reader.cancel()
            raise
        if not reader.cancelled() and reader.exception() is not None:
            LOGGER.error("Verdict reader failed: %s", reader.exception())
        self._notify()

    async def close(self) -> None:
        """Return to IDLE from any state, stopping any in-flight read."""

        self._fire(UIEvent.CLOSE)
        self._host.clear_selection()
        await self._cancel_reader()
        self._discard()
        self._notify()

    async def _read(self, text: str) -> None:
        source = await self._dispatcher.open(text)
        try:
            if not self._fire(UIEvent.STREAM_OPEN):
                return
            async for chunk in source:
                if not chunk:
                    continue
                self._result += chunk
                self._notify()
        finally:
            await source.aclose()

    async def _cancel_reader(self) -> None:
        reader, self._reader = self._reader, None
        if reader is None or reader.done():
            return
        reader.cancel()
        await asyncio.wait({reader})

    def _discard(self) -> None:
        self._selection = None
        self._result = ""

    def _fire(self, event: UIEvent) -> bool:
        target = transition(self._state, event)
        if target is None:
            LOGGER.debug("Ignoring %s in %s", event.value, self._state.value)
            return False
        self._state = target
        self._notify()
        return True

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
