"""Command line entry points: run the API server or check a claim from a terminal."""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass, field
from typing import Sequence, TextIO

from truthlens.client.dispatcher import DispatcherConfig, RequestDispatcher
from truthlens.client.state import InteractionStateMachine, Rect, SelectionSnapshot, UISnapshot, UIState
from truthlens.config import Settings, get_settings


@dataclass
class StaticSelectionHost:
    """Selection host for terminal use: the claim is the selection."""

    text: str
    cleared: bool = field(default=False, init=False)

    def read_selection(self) -> SelectionSnapshot | None:
        if self.cleared:
            return None
        return SelectionSnapshot(text=self.text, rects=(Rect(left=0.0, top=0.0, right=0.0, bottom=0.0),))

    def clear_selection(self) -> None:
        self.cleared = True


class _Printer:
    """Writes only the newly appended part of the result."""

    def __init__(self, out: TextIO) -> None:
        self._out = out
        self._shown = 0

    def __call__(self, snapshot: UISnapshot) -> None:
        if snapshot.state is not UIState.PANEL:
            return
        fresh = snapshot.result[self._shown :]
        if fresh:
            self._out.write(fresh)
            self._out.flush()
            self._shown = len(snapshot.result)


async def run_check(text: str, *, settings: Settings | None = None, out: TextIO = sys.stdout) -> str:
    """Select ``text``, press analyze and stream the verdict to ``out``."""

    settings = settings or get_settings()
    dispatcher = RequestDispatcher(
        DispatcherConfig(
            endpoint=settings.api_url,
            timeout=settings.client_timeout_seconds,
            fallback_step=settings.fallback_step_chars,
            fallback_interval=settings.fallback_interval_seconds,
        ),
    )
    machine = InteractionStateMachine(
        StaticSelectionHost(text),
        dispatcher,
        debounce_seconds=settings.selection_debounce_seconds,
        min_selection_length=settings.min_text_length,
    )
    machine.subscribe(_Printer(out))
    try:
        await machine.pointer_up()
        if machine.state is not UIState.BUBBLE:
            raise ValueError(f"Text must be at least {settings.min_text_length} characters")
        machine.pointer_enter()
        await machine.analyze()
        result = machine.result
        out.write("\n")
        return result
    finally:
        await machine.close()
        await dispatcher.aclose()


def serve(settings: Settings) -> None:
    import uvicorn

    from truthlens.api.app import create_app

    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="truthlens", description="Fact-check selected text against web evidence.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_parser = sub.add_parser("serve", help="Run the analysis API")
    serve_parser.add_argument("--host", default=None, help="Bind address (defaults to TRUTHLENS_HOST)")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port (defaults to TRUTHLENS_PORT)")

    check_parser = sub.add_parser("check", help="Stream a verdict for TEXT from the API")
    check_parser.add_argument("text", help="Claim to check (at least 10 characters)")
    check_parser.add_argument("--api-url", default=None, help="Analysis endpoint (defaults to TRUTHLENS_API_URL)")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    settings = get_settings()
    if args.command == "serve":
        overrides = {k: v for k, v in {"host": args.host, "port": args.port}.items() if v is not None}
        serve(settings.model_copy(update=overrides) if overrides else settings)
        return 0
    if args.api_url:
        settings = settings.model_copy(update={"api_url": args.api_url})
    try:
        asyncio.run(run_check(args.text, settings=settings))
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(main())
