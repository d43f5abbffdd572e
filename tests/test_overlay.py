from __future__ import annotations

from truthlens.client.overlay import (
    ANALYZE_LABEL,
    LOADING_LABEL,
    PANEL_TITLE,
    PLACEHOLDER,
    PanelLine,
    panel_lines,
    render,
)
from truthlens.client.state import Point, Selection, UISnapshot, UIState

SELECTION = Selection(text="某市将于下月起全面禁止燃油车上路行驶", anchor=Point(x=132, y=342))


def snapshot(state: UIState, result: str = "", selection: Selection | None = SELECTION) -> UISnapshot:
    return UISnapshot(state=state, selection=selection, result=result, streaming=False)


def test_idle_draws_nothing_and_passes_pointer_through() -> None:
    view = render(snapshot(UIState.IDLE))
    assert not view.visible
    assert not view.interactive


def test_bubble_and_bar_are_anchored_at_selection() -> None:
    bubble = render(snapshot(UIState.BUBBLE))
    bar = render(snapshot(UIState.ACTION_BAR))
    loading = render(snapshot(UIState.LOADING))

    assert bubble.visible and bubble.position == Point(x=132, y=342)
    assert bar.label == ANALYZE_LABEL
    assert loading.label == LOADING_LABEL


def test_empty_panel_shows_placeholder() -> None:
    view = render(snapshot(UIState.PANEL))
    assert view.title == PANEL_TITLE
    assert view.lines == (PanelLine("placeholder", PLACEHOLDER),)


def test_panel_lines_strip_markup_and_highlight_summary() -> None:
    lines = panel_lines("**总结：** 谣言\n\n## 核心分析：官方已辟谣\n- 支持点：无")
    assert lines == (
        PanelLine("headline", "总结： 谣言"),
        PanelLine("spacer"),
        PanelLine("text", "核心分析：官方已辟谣"),
        PanelLine("text", "支持点：无"),
    )
