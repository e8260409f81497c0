"""
Signage Contracts

Data structures shared by the sync engine and its consumers.

BOUNDARY: every module of the package exchanges these types.
Speakers are shared by reference between presentations, never copied.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple
from datetime import datetime
from pathlib import Path
from enum import Enum


# =============================================================================
# CONSTANTS
# =============================================================================

# Conference days, in fetch order
WEEKDAYS: Tuple[str, ...] = ("monday", "tuesday", "wednesday", "thursday", "friday")

PHOTO_SUFFIX = ".dat"


def is_safe_id(speaker_id: str) -> bool:
    """True when the id names a plain file inside a directory (no separators, no dot names)."""
    if not speaker_id or speaker_id in (".", ".."):
        return False
    return not any(sep in speaker_id for sep in ("/", "\\", "\0"))


# =============================================================================
# ENUMS
# =============================================================================

class FetchStatus(Enum):
    """Status of a fetch attempt."""
    SUCCESS = "success"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    IO_ERROR = "io_error"


class OperatingMode(Enum):
    """Which clock drives the display."""
    REAL = "REAL"
    TEST = "TEST"


# =============================================================================
# SCHEDULE ENTITIES
# =============================================================================

@dataclass(frozen=True)
class Speaker:
    """A conference speaker, identified by uuid."""
    uuid: str
    full_name: str
    photo_url: str = ""
    cache_dir: Optional[Path] = None

    @property
    def photo_path(self) -> Optional[Path]:
        """Where the cached photo lives (it may not exist yet)."""
        if self.cache_dir is None or not is_safe_id(self.uuid):
            return None
        return Path(self.cache_dir) / f"{self.uuid}{PHOTO_SUFFIX}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class Presentation:
    """
    One scheduled talk in a room.

    `start` and `end` are naive datetimes in venue local time.
    `length` is carried for display layouts and is currently always 0.
    """
    id: str
    title: str
    room: str
    start: datetime
    end: datetime
    length: int = 0
    summary: str = ""
    speakers: Tuple[Speaker, ...] = field(default_factory=tuple)
    track: str = ""
    talk_type: str = ""

    @property
    def speaker_line(self) -> str:
        """Speakers as shown under the title, e.g. 'by Ada Lovelace, Alan Turing'."""
        return "by " + ", ".join(s.full_name for s in self.speakers)

    def __str__(self) -> str:
        names = ", ".join(s.full_name for s in self.speakers)
        return (
            f"Presentation(id={self.id}, room={self.room}, "
            f"start={self.start.isoformat()}, end={self.end.isoformat()}, "
            f"speakers=[{names}])"
        )


# =============================================================================
# FETCH / SYNC RESULTS
# =============================================================================

@dataclass(frozen=True)
class FetchResult:
    """
    Result of a fetch attempt (success or failure).

    Failed fetches are returned, not raised.
    """
    url: str
    destination: Path
    status: FetchStatus
    attempted_at: datetime
    completed_at: datetime
    bytes_written: int = 0
    http_status: Optional[int] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == FetchStatus.SUCCESS

    @property
    def duration_ms(self) -> float:
        return (self.completed_at - self.attempted_at).total_seconds() * 1000


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one sync cycle for a room."""
    room_id: str
    success: bool
    speaker_count: int = 0
    presentation_count: int = 0
    failed_days: Tuple[str, ...] = field(default_factory=tuple)
    stale_sources: Tuple[str, ...] = field(default_factory=tuple)
    error_message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success


# =============================================================================
# SELECTION
# =============================================================================

@dataclass(frozen=True)
class Selection:
    """The next (up to) three presentations and whether the headline moved."""
    first: Optional[Presentation] = None
    second: Optional[Presentation] = None
    third: Optional[Presentation] = None
    changed: bool = False

    @property
    def upcoming(self) -> Tuple[Presentation, ...]:
        return tuple(p for p in (self.first, self.second, self.third) if p is not None)
