"""
Schedule Parser
===============

Turns downloaded roster and per-day schedule documents into Speakers and
Presentations.

Two layers:
- Pure mapping: raw JSON document -> list of normalized records.
  No state, no I/O, no knowledge of how the JSON was read.
- Application: records -> shared speaker / presentation maps, which are
  owned by the caller and passed in by reference.

GUARANTEES:
- A slot without a talk is skipped, never an error
- A talk without a title is dropped, never inserted
- A day's presentations are committed only after the whole day mapped
- First-seen speaker wins; presentations are last-parsed-wins by id
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import json
import logging

from .contracts import Presentation, Speaker
from .errors import MalformedDocumentError
from .photo_cache import PhotoCache


logger = logging.getLogger(__name__)

# Venue timezone: Central European Time
DEFAULT_UTC_OFFSET_HOURS = 1.0

SpeakerResolver = Callable[[str], Optional[Speaker]]


# =============================================================================
# NORMALIZED RECORDS
# =============================================================================

@dataclass(frozen=True)
class SpeakerRecord:
    """One speaker entry, as found in the roster or a detail document."""
    uuid: str
    full_name: str
    photo_url: str = ""


@dataclass(frozen=True)
class SlotRecord:
    """One talk-bearing schedule slot."""
    id: str
    title: str
    room: str
    start: datetime
    end: datetime
    summary: str = ""
    track: str = ""
    talk_type: str = ""
    speaker_links: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SlotMapping:
    """Result of mapping one day document."""
    records: Tuple[SlotRecord, ...]
    skipped_empty: int = 0
    dropped_untitled: int = 0


@dataclass(frozen=True)
class ParseReport:
    """What applying one day document did to the presentation map."""
    accepted: int
    skipped_empty: int
    dropped_untitled: int
    unresolved_speakers: Tuple[str, ...] = field(default_factory=tuple)


# =============================================================================
# PURE MAPPING
# =============================================================================

def load_document(path: Union[str, Path]) -> Any:
    """Read a JSON file. Decode failures become MalformedDocumentError."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedDocumentError(f"{path}: {e}") from e


def speaker_records(document: Any) -> List[SpeakerRecord]:
    """Map a roster document (array of speaker objects)."""
    if not isinstance(document, list):
        raise MalformedDocumentError(
            f"Speaker roster must be an array, got {type(document).__name__}"
        )
    return [speaker_record(entry) for entry in document]


def speaker_record(document: Any) -> SpeakerRecord:
    """Map a single speaker object."""
    if not isinstance(document, dict):
        raise MalformedDocumentError(
            f"Speaker entry must be an object, got {type(document).__name__}"
        )

    uuid = _text(document, "uuid")
    if not uuid:
        raise MalformedDocumentError("Speaker entry has no uuid")

    first = _text(document, "firstName")
    last = _text(document, "lastName")
    return SpeakerRecord(
        uuid=uuid,
        full_name=" ".join(part for part in (first, last) if part),
        photo_url=_text(document, "avatarURL")
    )


def slot_records(document: Any, utc_offset_hours: float = DEFAULT_UTC_OFFSET_HOURS) -> SlotMapping:
    """Map a per-day room schedule document (object with a "slots" array)."""
    if not isinstance(document, dict):
        raise MalformedDocumentError(
            f"Schedule must be an object, got {type(document).__name__}"
        )
    slots = document.get("slots")
    if not isinstance(slots, list):
        raise MalformedDocumentError("Schedule has no slots array")

    records = []
    skipped = 0
    untitled = 0

    for slot in slots:
        talk = slot.get("talk") if isinstance(slot, dict) else None
        if not isinstance(talk, dict):
            # Breaks, lunches, empty slots
            skipped += 1
            continue

        title = _text(talk, "title")
        if not title:
            untitled += 1
            continue

        talk_id = _text(talk, "id")
        if not talk_id:
            raise MalformedDocumentError(f"Talk '{title}' has no id")

        records.append(SlotRecord(
            id=talk_id,
            title=title,
            room=_text(slot, "roomId"),
            start=to_local_time(_required(slot, "fromTimeMillis", talk_id), utc_offset_hours),
            end=to_local_time(_required(slot, "toTimeMillis", talk_id), utc_offset_hours),
            summary=_text(talk, "summary"),
            track=_text(talk, "track"),
            talk_type=_text(talk, "talkType"),
            speaker_links=_speaker_links(talk)
        ))

    return SlotMapping(records=tuple(records), skipped_empty=skipped, dropped_untitled=untitled)


def speaker_id_from_link(href: str) -> str:
    """The trailing path segment of a speaker link is the speaker uuid."""
    return href.rstrip("/").rsplit("/", 1)[-1]


def to_local_time(millis: Union[str, int, float], utc_offset_hours: float = DEFAULT_UTC_OFFSET_HOURS) -> datetime:
    """Epoch milliseconds -> naive venue-local datetime, whole seconds."""
    venue = timezone(timedelta(hours=utc_offset_hours))
    try:
        if isinstance(millis, (int, float)):
            value = int(millis)
        else:
            value = int(str(millis).strip())
        return datetime.fromtimestamp(value // 1000, tz=venue).replace(tzinfo=None)
    except (ValueError, OverflowError, OSError) as e:
        raise MalformedDocumentError(f"Bad epoch milliseconds: {millis!r}") from e


def _text(obj: dict, key: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _required(obj: dict, key: str, talk_id: str):
    value = obj.get(key)
    if value is None or value == "":
        raise MalformedDocumentError(f"Slot for talk {talk_id} has no {key}")
    return value


def _speaker_links(talk: dict) -> Tuple[str, ...]:
    speakers = talk.get("speakers") or []
    if not isinstance(speakers, list):
        raise MalformedDocumentError(f"Talk {talk.get('id')} speakers is not an array")

    links = []
    for entry in speakers:
        link = entry.get("link") if isinstance(entry, dict) else None
        href = link.get("href") if isinstance(link, dict) else None
        if href:
            links.append(str(href))
    return tuple(links)


# =============================================================================
# APPLICATION TO SHARED MAPS
# =============================================================================

class ScheduleParser:
    """
    Applies mapped records to speaker and presentation maps.

    Holds no schedule state of its own: the maps belong to the caller.
    Newly inserted speakers get their photo cached.
    """

    def __init__(
        self,
        photo_cache: Optional[PhotoCache] = None,
        utc_offset_hours: float = DEFAULT_UTC_OFFSET_HOURS
    ):
        self._photo_cache = photo_cache
        self._utc_offset_hours = utc_offset_hours

    def apply_roster(self, document: Any, speakers: Dict[str, Speaker]) -> int:
        """Insert roster speakers not yet in the map. Returns how many were added."""
        added = 0
        for record in speaker_records(document):
            if record.uuid not in speakers:
                self.adopt_speaker(record, speakers)
                added += 1
        return added

    def adopt_speaker(self, record: SpeakerRecord, speakers: Dict[str, Speaker]) -> Speaker:
        """Return the map's speaker for this uuid, inserting (and caching) if new."""
        existing = speakers.get(record.uuid)
        if existing is not None:
            return existing

        speaker = Speaker(
            uuid=record.uuid,
            full_name=record.full_name,
            photo_url=record.photo_url,
            cache_dir=self._photo_cache.cache_dir if self._photo_cache else None
        )
        if self._photo_cache is not None:
            self._photo_cache.ensure_cached(speaker.uuid, speaker.photo_url)
        speakers[speaker.uuid] = speaker
        return speaker

    def apply_schedule(
        self,
        document: Any,
        speakers: Dict[str, Speaker],
        presentations: Dict[str, Presentation],
        resolver: Optional[SpeakerResolver] = None
    ) -> ParseReport:
        """
        Map one day document and merge it into `presentations`.

        Speaker references missing from `speakers` go to `resolver`
        (an out-of-band fetch); if that yields nothing, the reference
        is dropped.
        """
        mapping = slot_records(document, self._utc_offset_hours)

        day: List[Presentation] = []
        unresolved: List[str] = []
        for record in mapping.records:
            credited = []
            for href in record.speaker_links:
                speaker = speakers.get(speaker_id_from_link(href))
                if speaker is None and resolver is not None:
                    speaker = resolver(href)
                if speaker is None:
                    logger.debug("Failed to load speaker %s", href)
                    unresolved.append(speaker_id_from_link(href))
                    continue
                credited.append(speaker)

            day.append(Presentation(
                id=record.id,
                title=record.title,
                room=record.room,
                start=record.start,
                end=record.end,
                length=0,
                summary=record.summary,
                speakers=tuple(credited),
                track=record.track,
                talk_type=record.talk_type
            ))

        for presentation in day:
            logger.debug(
                "presentation = %s (%s - %s)",
                presentation.title, presentation.start, presentation.end
            )
            presentations[presentation.id] = presentation

        return ParseReport(
            accepted=len(day),
            skipped_empty=mapping.skipped_empty,
            dropped_untitled=mapping.dropped_untitled,
            unresolved_speakers=tuple(unresolved)
        )
