"""Headless client: selection state machine, dispatcher and overlay view model."""

from .dispatcher import DispatcherConfig, RequestDispatcher
from .overlay import OverlayView, PanelLine, render
from .sources import FALLBACK_VERDICT, ChunkSource, FallbackChunkSource, HttpChunkSource
from .state import (
    TRANSITIONS,
    InteractionStateMachine,
    Point,
    Rect,
    Selection,
    SelectionHost,
    SelectionSnapshot,
    UIEvent,
    UISnapshot,
    UIState,
    transition,
)

__all__ = [
    "FALLBACK_VERDICT",
    "TRANSITIONS",
    "ChunkSource",
    "DispatcherConfig",
    "FallbackChunkSource",
    "HttpChunkSource",
    "InteractionStateMachine",
    "OverlayView",
    "PanelLine",
    "Point",
    "Rect",
    "RequestDispatcher",
    "Selection",
    "SelectionHost",
    "SelectionSnapshot",
    "UIEvent",
    "UISnapshot",
    "UIState",
    "render",
    "transition",
]
