"""
Signage Application
===================

Ties the sync engine, the selector, the clock and a display together
for one room screen, and drives them from two timers.

FLOW:
1. Data timer (minutes): sync off the display path; overlapping runs
   are skipped, never queued
2. Screen timer (seconds): select against "now"; repaint only when the
   headline presentation changed
3. Operator commands: switch room, refresh photo cache, toggle test mode,
   nudge the test clock
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Union
import logging
import threading

import httpx

from .clock import DisplayClock, TestClock
from .config import SignageConfig
from .contracts import OperatingMode, Presentation, Selection, SyncResult
from .display import DisplaySink, LogDisplay
from .errors import ConfigError
from .rooms import RoomStore, room_display_name, room_id_for_number
from .selector import PresentationSelector
from .service import ScheduleSyncService


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisplayState:
    """Read-only view of what the screen currently shows. `scale` is the layout zoom."""
    room_id: str
    room_name: str
    online: Optional[bool]
    now: datetime
    mode: OperatingMode
    selection: Selection
    schedule: Tuple[Presentation, ...]
    scale: float = 1.0


class SignageApp:
    """Controller for one room screen."""

    def __init__(
        self,
        config: SignageConfig,
        service: ScheduleSyncService,
        clock: Optional[DisplayClock] = None,
        display: Optional[DisplaySink] = None,
        room_store: Optional[RoomStore] = None,
        selector: Optional[PresentationSelector] = None
    ):
        self._config = config
        self._service = service
        self._clock = clock or DisplayClock(
            TestClock(config.start_date, config.test_day, config.test_time),
            mode=config.mode,
            utc_offset_hours=config.utc_offset_hours
        )
        self._display = display or LogDisplay()
        self._room_store = room_store
        self._selector = selector or PresentationSelector()
        self._selection = Selection()
        self._display_lock = threading.Lock()

    @classmethod
    def create(
        cls,
        config: SignageConfig,
        room_id: Optional[str] = None,
        display: Optional[DisplaySink] = None,
        client: Optional[httpx.Client] = None
    ) -> 'SignageApp':
        """
        Build an app for `room_id`, or for the remembered room.

        Raises ConfigError when neither is available and UnknownRoomError
        when the room does not fit the venue's naming.
        """
        store = RoomStore(config.work_dir / config.room_file)
        room = (room_id or store.load() or "").strip().lower()
        if not room:
            raise ConfigError("Please specify a room to display")
        room_display_name(room, config.room_naming)

        service = ScheduleSyncService.from_config(config, room, client=client)
        return cls(config, service, display=display, room_store=store)

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def config(self) -> SignageConfig:
        return self._config

    @property
    def service(self) -> ScheduleSyncService:
        return self._service

    @property
    def clock(self) -> DisplayClock:
        return self._clock

    @property
    def room_name(self) -> str:
        return room_display_name(self._service.room_id, self._config.room_naming)

    def state(self) -> DisplayState:
        return DisplayState(
            room_id=self._service.room_id,
            room_name=self.room_name,
            online=self._service.online,
            now=self._clock.now(),
            mode=self._clock.mode,
            selection=self._selection,
            schedule=self._service.presentations,
            scale=self._config.test_scale if self._clock.mode is OperatingMode.TEST else 1.0
        )

    # =========================================================================
    # TIMER ACTIONS
    # =========================================================================

    def start(self) -> SyncResult:
        """Initial sync and first paint."""
        self._display.set_room(self.room_name)
        result = self._service.sync()
        self._display.set_online(result.success)
        self.update_display()
        return result

    def update_data(self) -> Optional[SyncResult]:
        """Re-sync; returns None when a sync was already running."""
        result = self._service.try_sync()
        if result is None:
            return None
        self._display.set_online(result.success)
        if result.success:
            self.update_display()
        return result

    def update_display(self) -> Selection:
        with self._display_lock:
            now = self._clock.now()
            selection = self._selector.select(now, self._service.presentations)
            self._selection = selection
            logger.debug("Screen update @ (%s)", now)
            if selection.changed:
                self._display.show(selection.first, selection.second, selection.third)
            return selection

    # =========================================================================
    # OPERATOR COMMANDS
    # =========================================================================

    def set_room(self, room: Union[int, str]) -> Optional[SyncResult]:
        """Switch the screen to another room and sync it."""
        room_id = room_id_for_number(room) if isinstance(room, int) else room.strip().lower()
        name = room_display_name(room_id, self._config.room_naming)
        logger.info("Fetching data for room %s", room_id)

        if self._room_store is not None:
            self._room_store.save(room_id)
        self._display.set_room(name)
        self._service.set_room(room_id)
        with self._display_lock:
            self._selector.reset()
            self._selection = Selection()
        return self.update_data()

    def refresh_photo_cache(self) -> Optional[SyncResult]:
        """Recreate the speaker photo cache, then reload the data."""
        logger.info("Recreating speaker cache")
        self._service.refresh_photo_cache()
        return self.update_data()

    def toggle_mode(self) -> OperatingMode:
        mode = self._clock.toggle_mode()
        logger.info("Operating mode is now %s", mode.value)
        self.update_display()
        self.update_data()
        return mode

    def advance_clock(self, minutes: int) -> Selection:
        self._clock.test_clock.advance(minutes)
        return self.update_display()

    def retreat_clock(self, minutes: int) -> Selection:
        self._clock.test_clock.retreat(minutes)
        return self.update_display()


class RefreshScheduler:
    """
    Runs the data and screen timers on daemon threads.

    Each timer waits on a shared stop event, so stop() returns promptly.
    """

    def __init__(self, app: SignageApp, data_interval: float, screen_interval: float):
        self._app = app
        self._data_interval = data_interval
        self._screen_interval = screen_interval
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []

    @classmethod
    def for_app(cls, app: SignageApp) -> 'RefreshScheduler':
        config = app.config
        return cls(app, config.data_refresh_minutes * 60, config.screen_refresh_seconds)

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(
                target=self._loop, args=("data", self._data_interval, self._app.update_data),
                name="signage-data", daemon=True
            ),
            threading.Thread(
                target=self._loop, args=("screen", self._screen_interval, self._app.update_display),
                name="signage-screen", daemon=True
            ),
        ]
        for thread in self._threads:
            thread.start()

    def stop(self, timeout: Optional[float] = None):
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)

    def _loop(self, name: str, interval: float, action: Callable[[], object]):
        while not self._stop.wait(interval):
            try:
                action()
            except Exception:
                logger.exception("%s refresh failed", name)
