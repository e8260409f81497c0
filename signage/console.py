"""
Operator Console

Line commands for a headless screen, one per line on stdin:

    0-9   switch room (0 = auditorium)
    u     repaint the display
    d     re-sync the data
    r     recreate the photo cache, then re-sync
    t     toggle REAL / TEST mode
    + -   test clock forward / back five minutes
    > <   test clock forward / back half an hour
    q     quit
"""

from __future__ import annotations
from typing import Iterable
import logging

from .app import SignageApp
from .clock import FIVE_MINUTES, HALF_HOUR
from .errors import UnknownRoomError


logger = logging.getLogger(__name__)

QUIT = "q"

_CLOCK_STEPS = {
    "+": FIVE_MINUTES,
    "-": -FIVE_MINUTES,
    ">": HALF_HOUR,
    "<": -HALF_HOUR,
}


def dispatch(app: SignageApp, command: str) -> bool:
    """Run one command. Returns False when the operator asked to quit."""
    command = command.strip().lower()
    if not command:
        return True

    if command == QUIT:
        logger.info("Quitting")
        return False

    if command.isdigit():
        try:
            app.set_room(int(command))
        except UnknownRoomError as e:
            logger.warning("%s", e)
    elif command in _CLOCK_STEPS:
        step = _CLOCK_STEPS[command]
        if step > 0:
            app.advance_clock(step)
        else:
            app.retreat_clock(-step)
        logger.info("Test clock: %s", app.clock.test_clock.now())
    elif command == "u":
        logger.info("Update display")
        app.update_display()
    elif command == "d":
        logger.info("Update data")
        app.update_data()
    elif command == "r":
        logger.info("Reloading data")
        app.refresh_photo_cache()
    elif command == "t":
        app.toggle_mode()
    else:
        logger.warning("Unknown command: %s", command)
    return True


def command_loop(app: SignageApp, lines: Iterable[str]) -> bool:
    """
    Feed lines to dispatch() until quit or end of input.

    Returns True when stopped by a quit command.
    """
    for line in lines:
        if not dispatch(app, line):
            return True
    return False
