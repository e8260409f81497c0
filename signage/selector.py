"""
Presentation Selector

Picks what the room display shows: the next presentations that have
not ended yet, and whether the headline one moved on since last time.
"""

from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional
import logging

from .contracts import Presentation, Selection


logger = logging.getLogger(__name__)

UPCOMING_LIMIT = 3


class PresentationSelector:
    """
    Remembers the current headline presentation to detect transitions.

    State is process-local and must be reset when the room changes.
    """

    def __init__(self):
        self._current: Optional[Presentation] = None

    @property
    def current(self) -> Optional[Presentation]:
        return self._current

    def select(self, now: datetime, presentations: Iterable[Presentation]) -> Selection:
        """
        Scan the time-sorted schedule for presentations ending after `now`.

        Stops at three. `changed` is True when the first one differs (by id)
        from the one remembered by the previous call.
        """
        upcoming = []
        for presentation in presentations:
            if now < presentation.end:
                upcoming.append(presentation)
                if len(upcoming) >= UPCOMING_LIMIT:
                    break

        first = upcoming[0] if len(upcoming) >= 1 else None
        second = upcoming[1] if len(upcoming) >= 2 else None
        third = upcoming[2] if len(upcoming) >= 3 else None

        changed = _id(first) != _id(self._current)
        self._current = first
        if changed:
            logger.debug("New presentation @ %s: %s", now, first)

        return Selection(first=first, second=second, third=third, changed=changed)

    def reset(self):
        self._current = None


def _id(presentation: Optional[Presentation]) -> Optional[str]:
    return presentation.id if presentation is not None else None
