from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from echoterm.config import settings  # noqa: E402
from echoterm.services.control_sequences import pretty_print  # noqa: E402
from echoterm.services.session import TerminalSession  # noqa: E402
from echoterm.services.terminal_emulator import TerminalDimensions  # noqa: E402


class TranscriptError(ValueError):
    pass


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")


def load_transcript(path: Path) -> list[dict[str, Any]]:
    try:
        events = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise TranscriptError(f"{path}: invalid JSON ({exc})") from exc
    if not isinstance(events, list):
        raise TranscriptError(f"{path}: expected a JSON list of events")
    return events


def replay(events: Iterable[dict[str, Any]], session: TerminalSession) -> None:
    """Feed recorded keystrokes, output chunks and pauses into a session."""
    for index, event in enumerate(events):
        if not isinstance(event, dict):
            raise TranscriptError(f"event {index}: expected an object")
        if "input" in event:
            session.send_input(str(event["input"]))
        elif "output" in event:
            session.receive_output(str(event["output"]))
        elif "pause" in event:
            session.pause(int(event["pause"]))
        elif event.get("clear"):
            session.clear()
        else:
            raise TranscriptError(f"event {index}: unknown event {sorted(event)}")


def _run_replay(args: argparse.Namespace) -> int:
    try:
        events = load_transcript(Path(args.transcript))
        session = TerminalSession(
            "replay",
            TerminalDimensions(width=args.width, height=args.height),
        )
        replay(events, session)
    except (OSError, TranscriptError) as exc:
        logging.error("%s", exc)
        return 2
    diagnostics = session.diagnostics()
    if args.json:
        print(
            json.dumps(
                {
                    "screen": session.screen.display(),
                    "fragments": session.screen.fragments,
                    "pending": session.local_echo.pending,
                    "diagnostics": list(diagnostics.entries),
                },
                indent=2,
            )
        )
        return 0
    print("\n".join(session.screen.display()))
    print("-" * args.width)
    if session.local_echo.pending:
        print(f"Unconfirmed echo: '{pretty_print(session.local_echo.pending)}'")
    if len(diagnostics):
        print(f"Mismatches ({len(diagnostics)}):")
        print(diagnostics.get_log(), end="")
    else:
        print("No mismatches.")
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("echoterm.main:app", host=args.host, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="echoctl", description="Local echo helper CLI")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    replay_parser = subparsers.add_parser("replay", help="Replay a keystroke/output transcript")
    replay_parser.add_argument("transcript", help="JSON list of input/output/pause/clear events")
    replay_parser.add_argument("--width", type=int, default=settings.terminal_width)
    replay_parser.add_argument("--height", type=int, default=settings.terminal_height)
    replay_parser.add_argument("--json", action="store_true", help="Output the result as JSON.")
    replay_parser.set_defaults(func=_run_replay)

    serve_parser = subparsers.add_parser("serve", help="Run the terminal HTTP service")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8100)
    serve_parser.set_defaults(func=_run_serve)

    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    _configure_logging(args.verbose)
    try:
        return args.func(args)
    except KeyboardInterrupt:
        logging.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
