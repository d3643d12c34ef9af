"""Command line entry point.

Usage:
  tab-organizer organize tabs_backup.json --debug --collapse-others --active-tab 3
  tab-organizer serve --host 127.0.0.1 --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any

from tab_organizer.config.settings import Settings, get_settings
from tab_organizer.errors import TabOrganizerError
from tab_organizer.orchestrator import build_orchestrator
from tab_organizer.state.models import dump_state
from tab_organizer.tabs.memory import InMemoryTabPlatform
from tab_organizer.tabs.platform import TabNotFoundError

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tab-organizer",
        description="Group open tabs into named, colored clusters with an AI endpoint.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug-level logging")
    sub = parser.add_subparsers(dest="command", required=True)

    organize = sub.add_parser("organize", help="Run one organize pass over a tab export")
    organize.add_argument("tabs_json", help="Tab export: list of windows with tabs, or a flat tab list")
    organize.add_argument("--debug", action="store_true", help="Include the debug log in the result")
    organize.add_argument(
        "--collapse-others",
        action="store_true",
        help="Collapse every group except the one holding the active tab",
    )
    organize.add_argument("--active-tab", type=int, default=None, help="Tab id to mark as active")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


async def run_organize(settings: Settings, platform: InMemoryTabPlatform) -> dict[str, Any]:
    orchestrator = build_orchestrator(settings, platform=platform)
    ack = await orchestrator.start()

    loop = asyncio.get_running_loop()
    # Keeps pending cancel requests referenced until they finish.
    cancel_requests: list[asyncio.Task[Any]] = []
    handles_sigint = True
    try:
        loop.add_signal_handler(
            signal.SIGINT,
            lambda: cancel_requests.append(loop.create_task(orchestrator.cancel())),
        )
    except (NotImplementedError, RuntimeError):
        handles_sigint = False
        log.debug("SIGINT handler unavailable; Ctrl-C will not cancel gracefully")

    try:
        state = await orchestrator.wait(ack.run_id)
    finally:
        if handles_sigint:
            loop.remove_signal_handler(signal.SIGINT)

    titles = {tab.id: tab.title for tab in await platform.query_tabs()}
    groups = [
        {
            "name": group.title,
            "color": group.color,
            "collapsed": group.collapsed,
            "tabs": [titles.get(tab_id) for tab_id in platform.tabs_in(group.group_id)],
        }
        for group in platform.groups()
    ]
    return {"state": dump_state(state), "groups": groups}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "serve":
        import uvicorn

        uvicorn.run("tab_organizer.api.main:app", host=args.host, port=args.port)
        return 0

    base = get_settings()
    settings = base.model_copy(
        update={
            "debug_mode": args.debug or base.debug_mode,
            "collapse_others": args.collapse_others or base.collapse_others,
        }
    )
    try:
        platform = InMemoryTabPlatform.from_export(args.tabs_json)
    except (OSError, ValueError) as exc:
        print(f"[ERROR] Could not read tab export: {exc}", file=sys.stderr)
        return 2
    if args.active_tab is not None:
        try:
            platform.activate(args.active_tab)
        except TabNotFoundError as exc:
            parser.error(str(exc))

    try:
        report = asyncio.run(run_organize(settings, platform))
    except TabOrganizerError as exc:
        print(f"[ERROR] {exc.user_message}", file=sys.stderr)
        return 2

    print(json.dumps(report, indent=2, ensure_ascii=False))
    return 0 if report["state"]["status"] == "completed" else 1


if __name__ == "__main__":
    sys.exit(main())
