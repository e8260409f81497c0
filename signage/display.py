"""
Display Sink

The rendering surface is outside the engine. Whatever draws the screen
implements DisplaySink; LogDisplay is the headless default.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional
import logging

from .contracts import Presentation


logger = logging.getLogger(__name__)


class DisplaySink(ABC):
    """Receives what a room screen should show."""

    @abstractmethod
    def set_room(self, name: str):
        """Room name shown in the header."""
        pass

    @abstractmethod
    def set_online(self, online: bool):
        """Online/offline indicator, driven by the last sync result."""
        pass

    @abstractmethod
    def show(
        self,
        first: Optional[Presentation],
        second: Optional[Presentation],
        third: Optional[Presentation]
    ):
        """Repaint the session panels. Called only when the headline changes."""
        pass


class LogDisplay(DisplaySink):
    """Writes screen updates to the log."""

    def set_room(self, name: str):
        logger.info("Room: %s", name)

    def set_online(self, online: bool):
        logger.info("Status: %s", "online" if online else "offline")

    def show(self, first, second, third):
        if first is None:
            logger.info("No more presentations")
            return
        logger.info("Now: %s %s %s", first.start.strftime("%H:%M"), first.title, first.speaker_line)
        for label, presentation in (("Next", second), ("Later", third)):
            if presentation is not None:
                logger.info(
                    "%s: %s %s", label, presentation.start.strftime("%H:%M"), presentation.title
                )
