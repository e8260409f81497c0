"""
Signage

Keeps a conference room screen in step with the published schedule:
syncs speakers and sessions for one room, caches speaker photos on
disk, and picks the current and upcoming presentations.
"""

from .contracts import (
    WEEKDAYS, FetchResult, FetchStatus, OperatingMode,
    Presentation, Selection, Speaker, SyncResult
)
from .errors import (
    ConfigError, MalformedDocumentError, SignageError,
    SnapshotUnavailableError, UnknownRoomError
)
from .fetcher import ResourceFetcher
from .photo_cache import PhotoCache
from .parser import ScheduleParser
from .service import ScheduleSyncService
from .selector import PresentationSelector
from .clock import DisplayClock, TestClock
from .config import SignageConfig
from .app import RefreshScheduler, SignageApp

__all__ = [
    "WEEKDAYS", "FetchResult", "FetchStatus", "OperatingMode",
    "Presentation", "Selection", "Speaker", "SyncResult",
    "ConfigError", "MalformedDocumentError", "SignageError",
    "SnapshotUnavailableError", "UnknownRoomError",
    "ResourceFetcher", "PhotoCache", "ScheduleParser", "ScheduleSyncService",
    "PresentationSelector", "DisplayClock", "TestClock", "SignageConfig",
    "RefreshScheduler", "SignageApp",
]
