"""View model for the selection overlay."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal, Sequence

from truthlens.client.state import Point, UISnapshot, UIState

PLACEHOLDER = "正在解析深度证据链..."
LOADING_LABEL = "分析中..."
ANALYZE_LABEL = "辨真伪"
PANEL_TITLE = "Truth Lens 分析结论"
HEADLINE_PREFIX = "总结："

_MARKDOWN_MARKERS = re.compile(r"[*\-#]")

LineKind = Literal["headline", "text", "spacer", "placeholder"]


@dataclass(frozen=True)
class PanelLine:
    kind: LineKind
    text: str = ""


@dataclass(frozen=True)
class OverlayView:
    """What the host should draw. ``interactive`` is False when nothing is drawn."""

    visible: bool
    interactive: bool
    mode: UIState
    position: Point | None = None
    label: str = ""
    title: str = ""
    lines: Sequence[PanelLine] = field(default_factory=tuple)


def render(snapshot: UISnapshot) -> OverlayView:
    if snapshot.state is UIState.IDLE or snapshot.selection is None:
        return OverlayView(visible=False, interactive=False, mode=UIState.IDLE)
    position = snapshot.selection.anchor
    if snapshot.state is UIState.PANEL:
        return OverlayView(
            visible=True,
            interactive=True,
            mode=UIState.PANEL,
            position=position,
            title=PANEL_TITLE,
            lines=panel_lines(snapshot.result),
        )
    label = {UIState.ACTION_BAR: ANALYZE_LABEL, UIState.LOADING: LOADING_LABEL}.get(snapshot.state, "")
    return OverlayView(visible=True, interactive=True, mode=snapshot.state, position=position, label=label)


def panel_lines(result: str) -> tuple[PanelLine, ...]:
    if not result:
        return (PanelLine("placeholder", PLACEHOLDER),)
    lines: list[PanelLine] = []
    for line in result.split("\n"):
        clean = _MARKDOWN_MARKERS.sub("", line).strip()
        if not clean:
            lines.append(PanelLine("spacer"))
        elif clean.startswith(HEADLINE_PREFIX):
            lines.append(PanelLine("headline", clean))
        else:
            lines.append(PanelLine("text", clean))
    return tuple(lines)
