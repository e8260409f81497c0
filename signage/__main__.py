"""
Signage command line.

    python -m signage sync  --properties signage.properties --room room1
    python -m signage run   --properties signage.properties
    python -m signage serve --properties signage.properties --port 8000

Exit codes: 1 initial data unavailable, 3 bad configuration, 4 unknown room.
"""
import argparse
import logging
import os
import sys
import threading
from typing import List, Optional

from .app import RefreshScheduler, SignageApp
from .config import PROPERTIES_ENV, ROOM_ENV, SignageConfig
from .console import command_loop
from .errors import ConfigError, UnknownRoomError
from .observability import setup_logging


logger = logging.getLogger("signage.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="signage", description="Conference room signage")
    parser.add_argument("--properties", help=f"Properties file (default: ${PROPERTIES_ENV})")
    parser.add_argument("--room", help="Room id, e.g. room1 (default: remembered room)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", help="Sync once and print the schedule")
    sub.add_parser("run", help="Sync, keep refreshing, and read operator commands from stdin")
    serve = sub.add_parser("serve", help="Serve the display API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = SignageConfig.load(args.properties)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 3

    setup_logging(config.logging_level)
    for line in config.describe():
        logger.info(line)

    if args.command == "serve":
        return serve(args)

    try:
        app = SignageApp.create(config, args.room)
    except ConfigError as e:
        logger.error("%s", e)
        return 3
    except UnknownRoomError as e:
        logger.error("%s", e)
        return 4

    result = app.start()
    if not result.success:
        logger.error("Error retrieving initial data from server: %s", result.error_message)
        return 1

    if args.command == "sync":
        for presentation in app.service.presentations:
            print(
                f"{presentation.start:%a %H:%M}-{presentation.end:%H:%M}  "
                f"{presentation.title}  {presentation.speaker_line}"
            )
        return 0

    scheduler = RefreshScheduler.for_app(app)
    scheduler.start()
    try:
        if not command_loop(app, sys.stdin):
            # stdin closed (service manager): keep refreshing until interrupted
            threading.Event().wait()
    except KeyboardInterrupt:
        logger.info("Signage stopped")
    finally:
        scheduler.stop(timeout=5)
    return 0


def serve(args) -> int:
    import uvicorn

    if args.properties:
        os.environ[PROPERTIES_ENV] = args.properties
    if args.room:
        os.environ[ROOM_ENV] = args.room
    uvicorn.run("signage.api.server:app", host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
