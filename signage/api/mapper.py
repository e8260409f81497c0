"""
API Mapper
==========

Transforms display state into response DTOs.
Speakers are flattened per presentation; photos are exposed as links
only when a cached file exists.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from ..app import DisplayState
from ..contracts import Presentation, Speaker


class SpeakerDTO(BaseModel):
    uuid: str
    full_name: str
    photo: Optional[str] = None


class PresentationDTO(BaseModel):
    id: str
    title: str
    room: str
    start: datetime
    end: datetime
    summary: str = ""
    track: str = ""
    talk_type: str = ""
    speakers: List[SpeakerDTO] = []


class ScheduleDTO(BaseModel):
    room_id: str
    room_name: str
    online: Optional[bool] = None
    presentations: List[PresentationDTO] = []


class UpcomingDTO(BaseModel):
    room_id: str
    room_name: str
    online: Optional[bool] = None
    now: datetime
    mode: str
    first: Optional[PresentationDTO] = None
    second: Optional[PresentationDTO] = None
    third: Optional[PresentationDTO] = None
    scale: float = 1.0


def map_speaker(speaker: Speaker) -> SpeakerDTO:
    photo = None
    if speaker.photo_path is not None and speaker.photo_path.exists():
        photo = f"/api/v1/speakers/{speaker.uuid}/photo"
    return SpeakerDTO(uuid=speaker.uuid, full_name=speaker.full_name, photo=photo)


def map_presentation(presentation: Optional[Presentation]) -> Optional[PresentationDTO]:
    if presentation is None:
        return None
    return PresentationDTO(
        id=presentation.id,
        title=presentation.title,
        room=presentation.room,
        start=presentation.start,
        end=presentation.end,
        summary=presentation.summary,
        track=presentation.track,
        talk_type=presentation.talk_type,
        speakers=[map_speaker(s) for s in presentation.speakers]
    )


def map_schedule(state: DisplayState) -> ScheduleDTO:
    return ScheduleDTO(
        room_id=state.room_id,
        room_name=state.room_name,
        online=state.online,
        presentations=[map_presentation(p) for p in state.schedule]
    )


def map_upcoming(state: DisplayState) -> UpcomingDTO:
    selection = state.selection
    return UpcomingDTO(
        room_id=state.room_id,
        room_name=state.room_name,
        online=state.online,
        now=state.now,
        mode=state.mode.value,
        first=map_presentation(selection.first),
        second=map_presentation(selection.second),
        third=map_presentation(selection.third),
        scale=state.scale
    )
