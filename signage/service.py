"""
Schedule Sync Service

Orchestrates roster and per-day schedule retrieval for one room.

DESIGN:
=======
1. Roster first - it is a hard prerequisite for speaker resolution
2. Then each weekday independently; a failed day is logged and skipped
3. An empty merged schedule is a failed sync
4. The published schedule is an immutable tuple sorted by (start, id),
   replaced wholesale on success and kept as-is on failure
5. One sync at a time; overlapping triggers are coalesced by try_sync()
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
import logging
import threading

import httpx

from .contracts import Presentation, Speaker, SyncResult, WEEKDAYS
from .errors import SignageError, SnapshotUnavailableError
from .fetcher import ResourceFetcher, discard
from .parser import ScheduleParser, load_document, speaker_id_from_link, speaker_record
from .photo_cache import PhotoCache


logger = logging.getLogger(__name__)

SPEAKERS_SNAPSHOT = "speakers.json"
SPEAKER_DETAIL_SNAPSHOT = "speaker.json"


def schedule_snapshot(day: str) -> str:
    """Local file name of one day's schedule snapshot."""
    return f"schedule-{day}.json"


def presentation_order(presentation: Presentation):
    """Sort key: start time, ties broken by session id."""
    return (presentation.start, presentation.id)


class ScheduleSyncService:
    """
    Owns the speaker map, the presentation map and the published schedule
    for a single room.
    """

    def __init__(
        self,
        host: str,
        room_id: str,
        fetcher: ResourceFetcher,
        parser: ScheduleParser,
        photo_cache: Optional[PhotoCache] = None,
        days: Iterable[str] = WEEKDAYS
    ):
        self._host = host.rstrip("/")
        self._room_id = room_id
        self._fetcher = fetcher
        self._parser = parser
        self._photo_cache = photo_cache
        self._days = tuple(days)

        self._speakers: Dict[str, Speaker] = {}
        self._presentation_map: Dict[str, Presentation] = {}
        self._presentations: Tuple[Presentation, ...] = ()
        self._unresolvable: Set[str] = set()
        self._online: Optional[bool] = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config, room_id: str, client: Optional[httpx.Client] = None) -> 'ScheduleSyncService':
        """Wire fetcher, photo cache and parser from a SignageConfig."""
        photo_cache = PhotoCache(config.image_cache, timeout=config.fetch_timeout, client=client)
        fetcher = ResourceFetcher(config.work_dir, timeout=config.fetch_timeout, client=client)
        parser = ScheduleParser(photo_cache, utc_offset_hours=config.utc_offset_hours)
        return cls(config.data_host, room_id, fetcher, parser, photo_cache)

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def room_id(self) -> str:
        return self._room_id

    @property
    def presentations(self) -> Tuple[Presentation, ...]:
        """The published, time-sorted schedule."""
        return self._presentations

    @property
    def speakers(self) -> Dict[str, Speaker]:
        return dict(self._speakers)

    @property
    def online(self) -> Optional[bool]:
        """Outcome of the last sync; None before the first one."""
        return self._online

    @property
    def photo_cache(self) -> Optional[PhotoCache]:
        return self._photo_cache

    def speakers_url(self) -> str:
        return f"{self._host}/speakers"

    def day_url(self, day: str) -> str:
        return f"{self._host}/rooms/{self._room_id}/{day}"

    # =========================================================================
    # SYNC
    # =========================================================================

    def sync(self) -> SyncResult:
        """Run a full sync cycle, waiting for any in-flight one first."""
        with self._lock:
            return self._sync()

    def try_sync(self) -> Optional[SyncResult]:
        """Run a sync cycle unless one is already running (then return None)."""
        if not self._lock.acquire(blocking=False):
            logger.info("Sync for room %s already in progress, skipping", self._room_id)
            return None
        try:
            return self._sync()
        finally:
            self._lock.release()

    def _sync(self) -> SyncResult:
        room = self._room_id
        logger.info("Retrieving data for room %s", room)

        self._speakers.clear()
        self._presentation_map.clear()
        self._unresolvable.clear()
        stale: List[str] = []

        try:
            document, fresh = self._retrieve(self.speakers_url(), SPEAKERS_SNAPSHOT)
            if not fresh:
                stale.append("speakers")
            self._parser.apply_roster(document, self._speakers)
        except (SignageError, OSError) as e:
            logger.error("Failed to retrieve speaker data: %s", e)
            return self._finish(SyncResult(
                room_id=room,
                success=False,
                stale_sources=tuple(stale),
                error_message=f"Speaker roster unavailable: {e}"
            ))

        logger.info("Found [%d] speakers", len(self._speakers))

        failed_days: List[str] = []
        for day in self._days:
            try:
                document, fresh = self._retrieve(self.day_url(day), schedule_snapshot(day))
                if not fresh:
                    stale.append(day)
                report = self._parser.apply_schedule(
                    document, self._speakers, self._presentation_map, self._resolve_speaker
                )
                logger.debug(
                    "%s: %d talks, %d empty slots, %d untitled",
                    day, report.accepted, report.skipped_empty, report.dropped_untitled
                )
            except (SignageError, OSError) as e:
                logger.error("Failed to retrieve schedule for %s: %s", day, e)
                failed_days.append(day)

        if not self._presentation_map:
            logger.error("No presentation data downloaded for room %s", room)
            return self._finish(SyncResult(
                room_id=room,
                success=False,
                speaker_count=len(self._speakers),
                failed_days=tuple(failed_days),
                stale_sources=tuple(stale),
                error_message="No presentations found"
            ))

        self._presentations = tuple(sorted(self._presentation_map.values(), key=presentation_order))
        logger.info("Found [%d] presentations", len(self._presentations))

        return self._finish(SyncResult(
            room_id=room,
            success=True,
            speaker_count=len(self._speakers),
            presentation_count=len(self._presentations),
            failed_days=tuple(failed_days),
            stale_sources=tuple(stale)
        ))

    def _finish(self, result: SyncResult) -> SyncResult:
        self._online = result.success
        return result

    def _retrieve(self, url: str, snapshot: str) -> Tuple[Any, bool]:
        """
        Fetch `url` into `snapshot` and load it.

        Falls back to the previous snapshot when the fetch fails.
        Returns (document, fresh).
        """
        result = self._fetcher.fetch(url, snapshot)
        path = self._fetcher.resolve(snapshot)

        if not result.success:
            if not path.exists():
                raise SnapshotUnavailableError(path, result.error_message or result.status.value)
            logger.warning("Using cached %s: %s", path.name, result.error_message)

        return load_document(path), result.success

    def _resolve_speaker(self, href: str) -> Optional[Speaker]:
        """
        Fetch a speaker missing from the roster from their own detail link.

        Speakers who have not accepted the CFP terms are scheduled but not
        listed; they are added to the shared map once fetched.
        """
        speaker_id = speaker_id_from_link(href)
        if speaker_id in self._unresolvable:
            return None

        logger.info("Speaker %s not in roster, loading details", speaker_id)
        result = self._fetcher.fetch(self._absolute(href), SPEAKER_DETAIL_SNAPSHOT)
        if not result.success:
            self._unresolvable.add(speaker_id)
            return None

        try:
            record = speaker_record(load_document(result.destination))
        except (SignageError, OSError) as e:
            logger.warning("Unreadable details for speaker %s: %s", speaker_id, e)
            self._unresolvable.add(speaker_id)
            return None

        return self._parser.adopt_speaker(record, self._speakers)

    def _absolute(self, href: str) -> str:
        if href.startswith(("http://", "https://")):
            return href
        return str(httpx.URL(self._host + "/").join(href))

    # =========================================================================
    # ROOM / CACHE MANAGEMENT
    # =========================================================================

    def clear_all(self):
        """Drop all speakers, presentations and the published schedule."""
        with self._lock:
            self._clear()

    def set_room(self, room_id: str):
        """
        Switch to another room.

        Waits for an in-flight sync, then clears all state, including the
        previous room's day snapshots on disk so they can never be used as
        a stale fallback for the new room.
        """
        with self._lock:
            logger.info("Switching room %s -> %s", self._room_id, room_id)
            self._room_id = room_id
            self._clear()
            for day in self._days:
                discard(self._fetcher.resolve(schedule_snapshot(day)))

    def _clear(self):
        self._speakers.clear()
        self._presentation_map.clear()
        self._unresolvable.clear()
        self._presentations = ()
        self._online = None

    def refresh_photo_cache(self) -> int:
        """
        Purge the photo cache and re-cache every scheduled speaker.

        Returns the number of photos now cached.
        """
        if self._photo_cache is None:
            return 0

        with self._lock:
            self._photo_cache.purge()
            seen = set()
            cached = 0
            for presentation in self._presentations:
                for speaker in presentation.speakers:
                    if speaker.uuid in seen:
                        continue
                    seen.add(speaker.uuid)
                    if self._photo_cache.ensure_cached(speaker.uuid, speaker.photo_url):
                        cached += 1
                        logger.debug("Created photo cache for %s", speaker.full_name)
            return cached
