"""
Rooms

Room ids, their display names, and the room a screen was last set to.

Venues name rooms differently:
- numbered: "room5" -> "5", "bof2" -> "BOF2", "aud_room" -> "Auditorium"
- lettered: "room1".."room3" -> "A".."C", any other "roomN" -> "D",
  anything else -> "Auditorium"
"""

from __future__ import annotations
from pathlib import Path
from typing import Optional, Union
import logging

from .errors import UnknownRoomError


logger = logging.getLogger(__name__)

AUDITORIUM_ROOM_ID = "aud_room"

_LETTERS = {"1": "A", "2": "B", "3": "C"}


def room_id_for_number(number: int) -> str:
    """Room selected by a number key: 0 is the auditorium."""
    if number == 0:
        return AUDITORIUM_ROOM_ID
    return f"room{number}"


def room_display_name(room_id: str, naming: str = "numbered") -> str:
    """Name shown on screen for a room id."""
    if naming == "lettered":
        if room_id.startswith("room"):
            return _LETTERS.get(room_id[len("room"):], "D")
        return "Auditorium"

    if room_id.startswith("room"):
        return room_id[len("room"):]
    if room_id.startswith("bof"):
        return "BOF" + room_id[len("bof"):]
    if room_id == AUDITORIUM_ROOM_ID:
        return "Auditorium"
    raise UnknownRoomError(f"Room name not recognised (must be roomX, bofX or {AUDITORIUM_ROOM_ID}): {room_id}")


class RoomStore:
    """Remembers the current room in a one-line text file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[str]:
        if not self._path.exists():
            return None
        room = self._path.read_text(encoding="utf-8").strip()
        return room.lower() or None

    def save(self, room_id: str):
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(room_id + "\n", encoding="utf-8")
        logger.debug("Remembered room %s in %s", room_id, self._path)
