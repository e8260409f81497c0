"""
Signage Test Fixtures

Explicit schedule documents and a scripted CFP server.
The network is simulated with httpx.MockTransport; nothing leaves the process.
"""

from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence
import json
import threading

import httpx

from signage.contracts import Presentation, Speaker, WEEKDAYS
from signage.display import DisplaySink
from signage.fetcher import ResourceFetcher
from signage.parser import ScheduleParser
from signage.photo_cache import PhotoCache
from signage.service import ScheduleSyncService


# =============================================================================
# FIXED VALUES
# =============================================================================

HOST = "http://cfp.example.org/api/conferences/DV23"
ROOM = "room1"

# Monday of the conference week
START_DATE = date(2023, 11, 13)

# 1_700_000_000_000 ms is 2023-11-14 22:13:20 UTC
T0_MILLIS = 1_700_000_000_000
T0_LOCAL = datetime(2023, 11, 14, 23, 13, 20)

PHOTO_BYTES = b"\x89PNG fake photo"


def millis(local: datetime, utc_offset_hours: float = 1.0) -> int:
    """Epoch milliseconds for a naive venue-local time."""
    venue = timezone(timedelta(hours=utc_offset_hours))
    return int(local.replace(tzinfo=venue).timestamp() * 1000)


# =============================================================================
# DOCUMENT BUILDERS
# =============================================================================

def speaker_doc(uuid: str, first: str, last: str, avatar: str = "") -> dict:
    return {"uuid": uuid, "firstName": first, "lastName": last, "avatarURL": avatar}


def speaker_link(uuid: str) -> str:
    return f"{HOST}/speakers/{uuid}"


def talk_slot(
    talk_id: str,
    title: str,
    start_ms,
    end_ms,
    speakers: Sequence[str] = (),
    room: str = ROOM,
    summary: str = "",
    track: str = "Java",
    talk_type: str = "Conference"
) -> dict:
    return {
        "roomId": room,
        "fromTimeMillis": start_ms,
        "toTimeMillis": end_ms,
        "talk": {
            "id": talk_id,
            "title": title,
            "summary": summary,
            "track": track,
            "talkType": talk_type,
            "speakers": [{"link": {"href": speaker_link(uuid)}} for uuid in speakers],
        },
    }


def break_slot(start_ms=T0_MILLIS, end_ms=T0_MILLIS + 1_800_000) -> dict:
    return {"roomId": ROOM, "fromTimeMillis": start_ms, "toTimeMillis": end_ms, "talk": None}


def day_doc(*slots) -> dict:
    return {"slots": list(slots)}


def talk_at(talk_id: str, day: int, hour: int, minute: int = 0, minutes: int = 50, **kwargs) -> dict:
    """A talk on conference day `day` (0 = Monday) at hour:minute venue time."""
    start = datetime.combine(START_DATE + timedelta(days=day), datetime.min.time()).replace(
        hour=hour, minute=minute
    )
    title = kwargs.pop("title", f"Talk {talk_id}")
    return talk_slot(
        talk_id, title, millis(start), millis(start + timedelta(minutes=minutes)), **kwargs
    )


def presentation(
    talk_id: str,
    start: datetime,
    minutes: int = 60,
    speakers: Sequence[Speaker] = ()
) -> Presentation:
    return Presentation(
        id=talk_id,
        title=f"Talk {talk_id}",
        room=ROOM,
        start=start,
        end=start + timedelta(minutes=minutes),
        speakers=tuple(speakers)
    )


# =============================================================================
# SCRIPTED SERVER
# =============================================================================

class FakeCfp:
    """
    Scripted CFP REST server.

    Routes map absolute URLs to a JSON-able body, raw bytes, an int status
    code, or an exception to raise. Unknown URLs answer 404.
    """

    def __init__(self, host: str = HOST, room: str = ROOM):
        self.host = host
        self.room = room
        self.routes: Dict[str, object] = {}
        self.requests: List[httpx.Request] = []

    def route(self, url: str, body):
        self.routes[url] = body
        return self

    def roster(self, *speakers: dict):
        return self.route(f"{self.host}/speakers", list(speakers))

    def day(self, day: str, document, room: Optional[str] = None):
        return self.route(f"{self.host}/rooms/{room or self.room}/{day}", document)

    def requested(self, url: str) -> int:
        return sum(1 for r in self.requests if str(r.url) == url)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.routes.get(str(request.url))
        if body is None:
            return httpx.Response(404, text="not found")
        if isinstance(body, Exception):
            raise body
        if isinstance(body, int):
            return httpx.Response(body)
        if isinstance(body, bytes):
            return httpx.Response(200, content=body)
        return httpx.Response(200, content=json.dumps(body).encode("utf-8"))

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handle))


def build_service(
    tmp_path: Path,
    cfp: FakeCfp,
    room: str = ROOM,
    days: Sequence[str] = WEEKDAYS
) -> ScheduleSyncService:
    """Service wired to the fake server, work files and photos under tmp_path."""
    client = cfp.client()
    photo_cache = PhotoCache(tmp_path / "photos", timeout=2.0, client=client)
    fetcher = ResourceFetcher(tmp_path / "work", timeout=2.0, client=client)
    parser = ScheduleParser(photo_cache)
    return ScheduleSyncService(HOST, room, fetcher, parser, photo_cache, days=days)


def monday(cfp: FakeCfp, room: str = ROOM, prefix: str = "M") -> FakeCfp:
    """Four back-to-back Monday talks, <prefix>1 at 10:00 to <prefix>4 at 13:00."""
    return cfp.day("monday", day_doc(
        talk_at(f"{prefix}1", 0, 10),
        talk_at(f"{prefix}2", 0, 11),
        talk_at(f"{prefix}3", 0, 12),
        talk_at(f"{prefix}4", 0, 13),
    ), room=room)


class RecordingDisplay(DisplaySink):
    """Keeps every call so tests can assert on what the screen was told."""

    def __init__(self):
        self.rooms = []
        self.online = []
        self.shown = []
        self.painted = threading.Event()

    def set_room(self, name):
        self.rooms.append(name)

    def set_online(self, online):
        self.online.append(online)

    def show(self, first, second, third):
        self.shown.append(tuple(p.id if p else None for p in (first, second, third)))
        self.painted.set()
