"""
Pydantic models and enums for the billboard session pipeline.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..errors import BillboardError
from ..models import (
    FaceSwapResult,
    TemplateRecord,
    UserAnalysis,
    VideoPoll,
    VideoTask,
    WireModel,
)


# ── Session State ────────────────────────────────────────────────────────────

class SessionState(str, Enum):
    INIT = "INIT"
    INTRO = "INTRO"
    CAMERA = "CAMERA"
    ANALYZING = "ANALYZING"
    ANALYSIS_DISPLAY = "ANALYSIS_DISPLAY"
    FACESWAP_LOADING = "FACESWAP_LOADING"
    BILLBOARD = "BILLBOARD"
    VIDEO_PENDING = "VIDEO_PENDING"
    VIDEO_READY = "VIDEO_READY"


ERROR_VIEW = "ERROR"


# ── Events & Effects ─────────────────────────────────────────────────────────

class EventKind(str, Enum):
    CATALOG_READY = "CATALOG_READY"
    START = "START"
    PHOTO_CAPTURED = "PHOTO_CAPTURED"
    CAMERA_CANCELLED = "CAMERA_CANCELLED"
    ANALYSIS_SUCCEEDED = "ANALYSIS_SUCCEEDED"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    REVEAL_COMPLETE = "REVEAL_COMPLETE"
    FACESWAP_SUCCEEDED = "FACESWAP_SUCCEEDED"
    FACESWAP_FAILED = "FACESWAP_FAILED"
    VIDEO_SUBMITTED = "VIDEO_SUBMITTED"
    VIDEO_SUBMIT_FAILED = "VIDEO_SUBMIT_FAILED"
    VIDEO_POLLED = "VIDEO_POLLED"
    RETRY = "RETRY"
    START_OVER = "START_OVER"


class Effect(str, Enum):
    RUN_ANALYSIS = "RUN_ANALYSIS"
    RUN_FACESWAP = "RUN_FACESWAP"
    SUBMIT_VIDEO = "SUBMIT_VIDEO"
    START_POLLING = "START_POLLING"
    STOP_POLLING = "STOP_POLLING"
    RELEASE_CAMERA = "RELEASE_CAMERA"


class SessionError(WireModel):
    message: str
    kind: str = "error"
    retryable: bool = True

    @classmethod
    def from_exception(cls, exc: Exception) -> "SessionError":
        if isinstance(exc, BillboardError):
            return cls(message=exc.message, kind=exc.kind, retryable=exc.retryable)
        # Unexpected failure inside a step; the user may still retry it
        return cls(message=str(exc) or type(exc).__name__, kind="unexpected", retryable=True)


class Event(BaseModel):
    """
    Input to the state machine.

    Network results carry the epoch they were issued in; user events leave it
    unset and always apply to the current session.
    """

    kind: EventKind
    epoch: Optional[int] = None
    photo: Optional[str] = None
    analysis: Optional[UserAnalysis] = None
    template: Optional[TemplateRecord] = None
    billboard: Optional[FaceSwapResult] = None
    task_id: Optional[str] = None
    poll: Optional[VideoPoll] = None
    error: Optional[SessionError] = None


class SessionData(WireModel):
    """Everything one session owns. Replaced wholesale on each transition."""

    state: SessionState = SessionState.INIT
    epoch: int = 0
    error: Optional[SessionError] = None
    photo: Optional[str] = None
    analysis: Optional[UserAnalysis] = None
    template: Optional[TemplateRecord] = None
    billboard: Optional[FaceSwapResult] = None
    video: Optional[VideoTask] = None

    @property
    def view(self) -> str:
        """What the presentation layer should render (ERROR overlays the state)."""
        return ERROR_VIEW if self.error else self.state.value


# ── API Request Models ───────────────────────────────────────────────────────

class AnalyzeUserRequest(WireModel):
    user_image: str = Field(..., description="Base64 data URI, e.g. data:image/jpeg;base64,...")


class FaceSwapRequest(WireModel):
    user_image: str
    template_filename: str = Field(..., description="Catalog filename, e.g. 001.jpg")


class GenerateVideoRequest(WireModel):
    image: str = Field(..., description="Public URL or data URI of the billboard")
    user_mood: Optional[str] = None
    user_description: Optional[str] = None


class CaptureRequest(WireModel):
    photo: str = Field(..., description="Captured frame as a base64 data URI")


class SessionResponse(WireModel):
    session_id: str
    state: SessionState
    view: str
    error: Optional[SessionError] = None
    has_photo: bool = False
    witty_comment: Optional[str] = None
    selected_template: Optional[str] = None
    billboard_image: Optional[str] = None
    billboard_message: Optional[str] = None
    video_task_id: Optional[str] = None
    video_url: Optional[str] = None

    @classmethod
    def from_session(cls, session_id: str, data: SessionData) -> "SessionResponse":
        return cls(
            session_id=session_id,
            state=data.state,
            view=data.view,
            error=data.error,
            has_photo=data.photo is not None,
            witty_comment=data.analysis.witty_comment if data.analysis else None,
            selected_template=data.template.filename if data.template else None,
            billboard_image=data.billboard.image if data.billboard else None,
            billboard_message=data.billboard.billboard_message if data.billboard else None,
            video_task_id=data.video.task_id if data.video else None,
            video_url=data.video.video_url if data.video else None,
        )
