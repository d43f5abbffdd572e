"""Tests for the selection overlay state machine."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable

import httpx
import pytest

from truthlens.client import (
    DispatcherConfig,
    InteractionStateMachine,
    Point,
    Rect,
    RequestDispatcher,
    SelectionSnapshot,
    UIEvent,
    UISnapshot,
    UIState,
    transition,
)

CLAIM = "某市将于下月起全面禁止燃油车上路行驶"


class FakeHost:
    def __init__(self, snapshot: SelectionSnapshot | None = None) -> None:
        self.current = snapshot
        self.cleared = 0

    def read_selection(self) -> SelectionSnapshot | None:
        return self.current

    def clear_selection(self) -> None:
        self.cleared += 1


class QueueSource:
    """Chunk source fed by the test; ``None`` ends the stream."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[str | None] = asyncio.Queue()
        self.closed = False

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        while True:
            chunk = await self.queue.get()
            if chunk is None:
                return
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


class FakeDispatcher:
    def __init__(self, source: QueueSource | None = None) -> None:
        self.source = source or QueueSource()
        self.texts: list[str] = []
        self.gate = asyncio.Event()
        self.gate.set()

    async def open(self, text: str) -> QueueSource:
        self.texts.append(text)
        await self.gate.wait()
        return self.source


def selection(text: str = CLAIM) -> SelectionSnapshot:
    return SelectionSnapshot(
        text=text,
        rects=(Rect(left=0, top=0, right=50, bottom=20), Rect(left=0, top=20, right=120, bottom=40)),
        scroll_x=10,
        scroll_y=300,
    )


def make_machine(host: FakeHost, dispatcher) -> InteractionStateMachine:
    return InteractionStateMachine(host, dispatcher, debounce_seconds=0)


async def until(predicate: Callable[[], bool], attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


async def action_bar(machine: InteractionStateMachine) -> None:
    await machine.pointer_up()
    machine.pointer_enter()
    assert machine.state is UIState.ACTION_BAR


@pytest.mark.parametrize("text", ["123456789", "   123456789   ", ""])
async def test_short_selection_stays_idle(text: str) -> None:
    machine = make_machine(FakeHost(selection(text)), FakeDispatcher())
    await machine.pointer_up()
    assert machine.state is UIState.IDLE
    assert machine.selection is None


async def test_selection_opens_bubble_past_last_line_box() -> None:
    machine = make_machine(FakeHost(selection("0123456789")), FakeDispatcher())

    await machine.pointer_up()

    assert machine.state is UIState.BUBBLE
    assert machine.selection is not None
    assert machine.selection.text == "0123456789"
    assert machine.selection.anchor == Point(x=132, y=342)


async def test_missing_selection_or_overlay_pointer_is_ignored() -> None:
    host = FakeHost(None)
    machine = make_machine(host, FakeDispatcher())
    await machine.pointer_up()
    assert machine.state is UIState.IDLE

    host.current = selection()
    await machine.pointer_up(inside_overlay=True)
    assert machine.state is UIState.IDLE


async def test_pointer_enter_and_leave_toggle_action_bar() -> None:
    machine = make_machine(FakeHost(selection()), FakeDispatcher())
    machine.pointer_enter()
    assert machine.state is UIState.IDLE

    await machine.pointer_up()
    machine.pointer_enter()
    assert machine.state is UIState.ACTION_BAR
    machine.pointer_leave()
    assert machine.state is UIState.BUBBLE


async def test_outside_pointer_down_dismisses_bubble() -> None:
    host = FakeHost(selection())
    machine = make_machine(host, FakeDispatcher())
    await machine.pointer_up()

    machine.pointer_down(inside_overlay=True)
    assert machine.state is UIState.BUBBLE

    machine.pointer_down()
    assert machine.state is UIState.IDLE
    assert machine.selection is None
    assert host.cleared == 1


def test_unlisted_events_are_rejected() -> None:
    assert transition(UIState.IDLE, UIEvent.ANALYZE) is None
    assert transition(UIState.BUBBLE, UIEvent.ANALYZE) is None
    assert transition(UIState.LOADING, UIEvent.OUTSIDE_POINTER_DOWN) is None
    assert transition(UIState.PANEL, UIEvent.SELECT) is None
    for state in UIState:
        assert transition(state, UIEvent.CLOSE) is UIState.IDLE


async def test_analyze_requires_action_bar() -> None:
    dispatcher = FakeDispatcher()
    machine = make_machine(FakeHost(selection()), dispatcher)
    await machine.pointer_up()

    await machine.analyze()

    assert machine.state is UIState.BUBBLE
    assert dispatcher.texts == []


async def test_loading_ignores_outside_pointer_and_new_selection() -> None:
    host = FakeHost(selection())
    dispatcher = FakeDispatcher()
    dispatcher.gate.clear()
    machine = make_machine(host, dispatcher)
    await action_bar(machine)

    task = asyncio.create_task(machine.analyze())
    await until(lambda: dispatcher.texts == [CLAIM])
    assert machine.state is UIState.LOADING
    assert host.cleared == 1

    machine.pointer_down()
    host.current = selection("另一段足够长的新选中文本内容")
    await machine.pointer_up()
    assert machine.state is UIState.LOADING
    assert machine.selection is not None and machine.selection.text == CLAIM

    await machine.close()
    await task


async def test_verdict_grows_monotonically_in_panel() -> None:
    dispatcher = FakeDispatcher()
    machine = make_machine(FakeHost(selection()), dispatcher)
    seen: list[UISnapshot] = []
    machine.subscribe(seen.append)
    await action_bar(machine)

    task = asyncio.create_task(machine.analyze())
    for chunk in ("总结：", "", "待", "验证"):
        await dispatcher.source.queue.put(chunk)
    await dispatcher.source.queue.put(None)
    await task

    assert machine.state is UIState.PANEL
    assert machine.result == "总结：待验证"
    assert not machine.streaming
    assert dispatcher.source.closed
    panel = [snap.result for snap in seen if snap.state is UIState.PANEL]
    assert panel[0] == ""
    for before, after in zip(panel, panel[1:]):
        assert after.startswith(before)


async def test_close_stops_reading_and_discards_state() -> None:
    dispatcher = FakeDispatcher()
    host = FakeHost(selection())
    machine = make_machine(host, dispatcher)
    await action_bar(machine)

    task = asyncio.create_task(machine.analyze())
    await dispatcher.source.queue.put("总结：")
    await until(lambda: machine.result == "总结：")
    assert machine.state is UIState.PANEL

    await machine.close()

    assert machine.state is UIState.IDLE
    assert machine.selection is None
    assert machine.result == ""
    assert dispatcher.source.closed
    await dispatcher.source.queue.put("迟到的内容")
    await asyncio.sleep(0)
    assert machine.result == ""
    await task


async def test_close_while_loading_returns_to_idle() -> None:
    dispatcher = FakeDispatcher()
    dispatcher.gate.clear()
    machine = make_machine(FakeHost(selection()), dispatcher)
    await action_bar(machine)

    task = asyncio.create_task(machine.analyze())
    await until(lambda: dispatcher.texts == [CLAIM])
    await machine.close()
    dispatcher.gate.set()
    await task

    assert machine.state is UIState.IDLE
    assert machine.result == ""


async def test_unsubscribe_stops_notifications() -> None:
    machine = make_machine(FakeHost(selection()), FakeDispatcher())
    seen: list[UISnapshot] = []
    unsubscribe = machine.subscribe(seen.append)
    await machine.pointer_up()
    unsubscribe()
    machine.pointer_enter()
    assert [snap.state for snap in seen] == [UIState.BUBBLE]


async def test_unreachable_backend_reveals_full_fallback() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    dispatcher = RequestDispatcher(
        DispatcherConfig(fallback_text="总结：待验证\n\n结论：演示", fallback_interval=0),
        client=client,
    )
    machine = make_machine(FakeHost(selection()), dispatcher)
    await action_bar(machine)

    await machine.analyze()

    assert machine.state is UIState.PANEL
    assert machine.result == "总结：待验证\n\n结论：演示"
    await dispatcher.aclose()
