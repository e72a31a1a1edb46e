"""
Pydantic models shared by the provider clients, the template catalog and the
session pipeline.

Field names are snake_case in Python and camelCase on the wire.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Template ─────────────────────────────────────────────────────────────────

class TemplateRecord(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    filename: str
    person_count: int = Field(..., gt=0)
    mood: str
    colors: str
    aspect_ratio: str
    description: str


# ── Analysis ─────────────────────────────────────────────────────────────────

class UserAnalysis(WireModel):
    witty_comment: str = Field(..., min_length=1)
    mood: str = Field(..., min_length=1)
    dominant_color: str = Field(..., min_length=1)
    suggested_moods: list[str] = Field(..., min_length=1)

    def mood_text(self) -> str:
        """Mood keyword followed by the suggestions, space separated."""
        return " ".join([self.mood, *self.suggested_moods])


# ── Face swap ────────────────────────────────────────────────────────────────

class FaceSwapResult(WireModel):
    image: str  # data:image/jpeg;base64,...
    billboard_message: str


# ── Video ────────────────────────────────────────────────────────────────────

class VideoStatus(str, Enum):
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: object) -> "VideoStatus":
        """Map a provider status string; anything unrecognised is UNKNOWN."""
        if raw is None or raw == "":
            return cls.UNKNOWN
        try:
            return cls(str(raw).upper())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in (VideoStatus.SUCCEEDED, VideoStatus.FAILED)


class VideoPoll(WireModel):
    status: VideoStatus = VideoStatus.UNKNOWN
    raw_status: str = "UNKNOWN"
    video_url: Optional[str] = None


class VideoTask(WireModel):
    task_id: str
    status: VideoStatus = VideoStatus.RUNNING
    video_url: Optional[str] = None
