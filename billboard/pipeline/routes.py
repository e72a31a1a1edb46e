"""
FastAPI routes for the billboard pipeline.

API Endpoints (one provider step each):
  POST /api/analyze-templates      — Static template catalog
  POST /api/analyze-user           — Analyze photo + select template
  POST /api/faceswap               — Face swap + caption (parallel)
  POST /api/generate-video         — Submit image-to-video task
  GET  /api/video-status/{task_id} — Poll video task

Session Endpoints (server-side state machine for thin clients):
  POST   /sessions                         — Create a session (boots to INTRO)
  GET    /sessions/{id}                    — Current session snapshot
  POST   /sessions/{id}/start              — INTRO → CAMERA
  POST   /sessions/{id}/capture            — CAMERA → ANALYZING
  POST   /sessions/{id}/cancel-camera      — CAMERA → INTRO
  POST   /sessions/{id}/reveal-complete    — ANALYSIS_DISPLAY → FACESWAP_LOADING
  POST   /sessions/{id}/retry              — Re-enter the failed step
  POST   /sessions/{id}/start-over         — Clear everything, back to INTRO
  DELETE /sessions/{id}                    — Abandon the session

Sessions idle for longer than BILLBOARD_SESSION_TTL seconds (default 1800)
are closed and dropped on the next session request.
"""

import os
import time
import asyncio
import logging

from fastapi import APIRouter, HTTPException

from .. import gemini, nanobanana, runway
from ..errors import (
    BillboardError,
    ConfigurationError,
    ModerationRefusal,
    TemplateNotFound,
)
from ..images import load_template_image, strip_data_uri
from ..prompts import video_prompt
from ..templates import TEMPLATES, describe_template, select_template
from .models import (
    AnalyzeUserRequest,
    CaptureRequest,
    FaceSwapRequest,
    GenerateVideoRequest,
    SessionResponse,
)
from .orchestrator import PERSON_COUNT, BillboardSession

logger = logging.getLogger(__name__)


def _http_error(e: BillboardError) -> HTTPException:
    """Map the client error taxonomy onto HTTP status codes."""
    if isinstance(e, ConfigurationError):
        code = 500
    elif isinstance(e, TemplateNotFound):
        code = 404
    elif isinstance(e, ModerationRefusal):
        code = 422
    else:
        code = 502
    return HTTPException(status_code=code, detail=e.message)


def _raw_image(image: str) -> str:
    data = strip_data_uri(image)
    if not data:
        raise HTTPException(status_code=400, detail="Empty image data after stripping data URI prefix.")
    return data


# ═════════════════════════════════════════════════════════════════════════════
# API Router
# ═════════════════════════════════════════════════════════════════════════════

api_router = APIRouter(prefix="/api", tags=["api"])


@api_router.post("/analyze-templates")
async def analyze_templates():
    """Return the pre-analyzed template metadata (no model call)."""
    logger.info("Returning pre-cached template metadata")
    return {
        "success": True,
        "templates": [t.model_dump(by_alias=True) for t in TEMPLATES],
        "count": len(TEMPLATES),
    }


@api_router.post("/analyze-user")
async def analyze_user(request: AnalyzeUserRequest):
    """Analyze the user's photo and pick the best matching template."""
    image = _raw_image(request.user_image)
    logger.info(f"Analyzing user image ({len(image)} characters)")

    try:
        analysis = await gemini.analyze_user(image)
    except BillboardError as e:
        logger.error(f"analyze-user failed: {e}")
        raise _http_error(e)

    selected = select_template(PERSON_COUNT, analysis.mood_text())
    logger.info(f"Analysis complete. Mood: {analysis.mood}, template: {selected.filename}")

    return {
        "success": True,
        "analysis": {
            **analysis.model_dump(by_alias=True),
            "selectedTemplate": selected.model_dump(by_alias=True),
        },
    }


@api_router.post("/faceswap")
async def faceswap(request: FaceSwapRequest):
    """Composite the user's face onto a template and write its tagline."""
    user_image = _raw_image(request.user_image)

    try:
        template_b64, template_mime = load_template_image(request.template_filename)
        image, message = await asyncio.gather(
            nanobanana.face_swap(user_image, template_b64, template_mime),
            gemini.generate_billboard_message(describe_template(request.template_filename)),
        )
    except BillboardError as e:
        logger.error(f"faceswap failed: {e}")
        raise _http_error(e)

    return {"success": True, "image": image, "billboardMessage": message}


@api_router.post("/generate-video")
async def generate_video(request: GenerateVideoRequest):
    """Submit the billboard for image-to-video generation."""
    prompt = video_prompt(request.user_mood, request.user_description)
    logger.info(f"Constructed video prompt: {prompt}")

    try:
        task_id = await runway.generate_video(request.image, prompt)
    except BillboardError as e:
        logger.error(f"generate-video failed: {e}")
        raise _http_error(e)

    return {"success": True, "taskId": task_id, "status": "RUNNING"}


@api_router.get("/video-status/{task_id}")
async def video_status(task_id: str):
    """Poll a video task."""
    try:
        poll = await runway.get_video_status(task_id)
    except BillboardError as e:
        logger.error(f"video-status failed for {task_id}: {e}")
        raise _http_error(e)

    body = {"success": True, "status": poll.raw_status}
    if poll.video_url:
        body["videoUrl"] = poll.video_url
    return body


# ═════════════════════════════════════════════════════════════════════════════
# Session Router — one BillboardSession per end-user interaction
# ═════════════════════════════════════════════════════════════════════════════

session_router = APIRouter(prefix="/sessions", tags=["sessions"])

_sessions: dict[str, BillboardSession] = {}

# Sessions with no event for this long are closed and forgotten
SESSION_TTL = int(os.environ.get("BILLBOARD_SESSION_TTL", 1800))  # seconds


def _evict_idle():
    now = time.monotonic()
    for session_id, session in list(_sessions.items()):
        if now - session.last_active > SESSION_TTL:
            logger.info(f"[{session_id}] Evicting idle session ({session.data.view})")
            _sessions.pop(session_id, None)
            session.close()


def _get_session(session_id: str) -> BillboardSession:
    _evict_idle()
    session = _sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    session.last_active = time.monotonic()
    return session


def _snapshot(session: BillboardSession) -> SessionResponse:
    return SessionResponse.from_session(session.session_id, session.data)


@session_router.post("", response_model=SessionResponse)
async def create_session():
    _evict_idle()
    session = BillboardSession()
    await session.boot()
    _sessions[session.session_id] = session
    return _snapshot(session)


@session_router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    return _snapshot(_get_session(session_id))


@session_router.post("/{session_id}/start", response_model=SessionResponse)
async def start_session(session_id: str):
    session = _get_session(session_id)
    session.start()
    return _snapshot(session)


@session_router.post("/{session_id}/capture", response_model=SessionResponse)
async def capture_photo(session_id: str, request: CaptureRequest):
    session = _get_session(session_id)
    try:
        session.capture(request.photo)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _snapshot(session)


@session_router.post("/{session_id}/cancel-camera", response_model=SessionResponse)
async def cancel_camera(session_id: str):
    session = _get_session(session_id)
    session.cancel_camera()
    return _snapshot(session)


@session_router.post("/{session_id}/reveal-complete", response_model=SessionResponse)
async def reveal_complete(session_id: str):
    session = _get_session(session_id)
    session.reveal_complete()
    return _snapshot(session)


@session_router.post("/{session_id}/retry", response_model=SessionResponse)
async def retry_step(session_id: str):
    session = _get_session(session_id)
    session.retry()
    return _snapshot(session)


@session_router.post("/{session_id}/start-over", response_model=SessionResponse)
async def start_over(session_id: str):
    session = _get_session(session_id)
    session.start_over()
    return _snapshot(session)


@session_router.delete("/{session_id}")
async def delete_session(session_id: str):
    session = _sessions.pop(session_id, None)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    session.close()
    return {"status": "ok", "session_id": session_id}
