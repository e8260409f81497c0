"""
Signage Application Tests

The controller repaints only on a headline change, reports online/offline
after each sync, and resets everything on a room switch.
"""

from datetime import datetime
import threading

import pytest

from signage.app import RefreshScheduler, SignageApp
from signage.clock import DisplayClock, TestClock
from signage.config import SignageConfig
from signage.contracts import OperatingMode
from signage.errors import ConfigError, UnknownRoomError
from signage.rooms import RoomStore

from .fixtures import HOST, START_DATE, FakeCfp, RecordingDisplay, build_service, monday, speaker_doc


WALL = datetime(2023, 11, 13, 9, 30)


@pytest.fixture
def cfp():
    cfp = FakeCfp().roster(speaker_doc("abc123", "Ada", "Lovelace"))
    monday(cfp)
    return cfp


@pytest.fixture
def config(tmp_path):
    return SignageConfig(
        data_host=HOST,
        start_date=START_DATE,
        image_cache=tmp_path / "photos",
        work_dir=tmp_path / "work"
    )


@pytest.fixture
def display():
    return RecordingDisplay()


@pytest.fixture
def app(tmp_path, cfp, config, display):
    clock = DisplayClock(TestClock(START_DATE), wall=lambda: WALL)
    store = RoomStore(tmp_path / "work" / config.room_file)
    return SignageApp(config, build_service(tmp_path, cfp), clock, display, store)


class TestStart:

    def test_first_paint(self, app, display):
        result = app.start()

        assert result.success
        assert display.rooms == ["1"]
        assert display.online == [True]
        assert display.shown == [("M1", "M2", "M3")]

    def test_failed_initial_sync(self, tmp_path, config, display):
        app = SignageApp(config, build_service(tmp_path, FakeCfp()), display=display)

        result = app.start()

        assert not result.success
        assert display.online == [False]
        assert display.shown == []


class TestScreenUpdates:

    def test_repaint_only_on_change(self, app, display):
        app.start()
        app.update_display()
        app.update_display()

        assert len(display.shown) == 1

    def test_test_clock_drives_the_screen(self, app, display):
        app.start()
        app.toggle_mode()
        assert app.clock.mode is OperatingMode.TEST

        app.advance_clock(110)
        app.advance_clock(5)
        app.retreat_clock(5)

        assert display.shown == [("M1", "M2", "M3"), ("M2", "M3", "M4")]
        assert app.state().selection.first.id == "M2"

    def test_state(self, app):
        app.start()
        state = app.state()

        assert state.room_id == "room1"
        assert state.room_name == "1"
        assert state.online is True
        assert state.now == WALL
        assert [p.id for p in state.schedule] == ["M1", "M2", "M3", "M4"]


class TestDataUpdates:

    def test_failed_refresh_reports_offline_and_keeps_screen(self, app, cfp, display):
        app.start()
        cfp.route(f"{HOST}/speakers", b"{broken")

        result = app.update_data()

        assert not result.success
        assert display.online == [True, False]
        assert len(display.shown) == 1
        assert len(app.service.presentations) == 4


class TestSetRoom:

    def test_switch_by_number(self, app, cfp, display, tmp_path):
        monday(cfp, room="room2", prefix="R")
        app.start()

        result = app.set_room(2)

        assert result.success
        assert app.service.room_id == "room2"
        assert display.rooms == ["1", "2"]
        assert display.shown[-1] == ("R1", "R2", "R3")
        assert RoomStore(tmp_path / "work" / "current-room.txt").load() == "room2"

    def test_unknown_room_changes_nothing(self, app, display):
        app.start()

        with pytest.raises(UnknownRoomError):
            app.set_room("kitchen")

        assert app.service.room_id == "room1"
        assert display.rooms == ["1"]

    def test_zero_is_the_auditorium(self, app, cfp, display):
        monday(cfp, room="aud_room", prefix="K")
        app.start()

        assert app.set_room(0).success
        assert app.service.room_id == "aud_room"
        assert display.rooms == ["1", "Auditorium"]
        assert display.shown[-1] == ("K1", "K2", "K3")

    def test_refresh_photo_cache_resyncs(self, app, cfp):
        app.start()
        before = len(cfp.requests)

        assert app.refresh_photo_cache().success
        assert len(cfp.requests) > before


class TestCreate:

    def test_needs_a_room(self, config):
        with pytest.raises(ConfigError):
            SignageApp.create(config)

    def test_uses_remembered_room(self, config):
        RoomStore(config.work_dir / config.room_file).save("room4")
        app = SignageApp.create(config, client=FakeCfp().client())
        assert app.service.room_id == "room4"

    def test_explicit_room_wins(self, config):
        RoomStore(config.work_dir / config.room_file).save("room4")
        app = SignageApp.create(config, "ROOM5")
        assert app.service.room_id == "room5"

    def test_rejects_unknown_room(self, config):
        with pytest.raises(UnknownRoomError):
            SignageApp.create(config, "kitchen")

    def test_auditorium_by_id(self, config):
        assert SignageApp.create(config, "aud_room").room_name == "Auditorium"

    def test_lettered_naming(self, config):
        config.room_naming = "lettered"
        assert SignageApp.create(config, "aud_room").room_name == "Auditorium"


class TestRefreshScheduler:

    def test_timers_run_until_stopped(self, app, display):
        app.service.sync()
        scheduler = RefreshScheduler(app, data_interval=0.01, screen_interval=0.01)

        scheduler.start()
        try:
            assert display.painted.wait(5)
            assert scheduler.running
        finally:
            scheduler.stop(timeout=5)

        assert not scheduler.running

    def test_intervals_from_config(self, app):
        scheduler = RefreshScheduler.for_app(app)
        assert scheduler._data_interval == 30 * 60
        assert scheduler._screen_interval == 60

    def test_failing_action_does_not_stop_timer(self, app, caplog):
        calls = []

        def explode():
            calls.append(1)
            raise RuntimeError("boom")

        app.update_display = explode
        scheduler = RefreshScheduler(app, data_interval=60, screen_interval=0.01)
        scheduler.start()
        try:
            for _ in range(500):
                if len(calls) >= 2:
                    break
                threading.Event().wait(0.01)
        finally:
            scheduler.stop(timeout=5)

        assert len(calls) >= 2
        assert "screen refresh failed" in caplog.text
