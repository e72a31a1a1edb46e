"""
Session state machine: pure transitions, no I/O.

    INIT → INTRO → CAMERA → ANALYZING → ANALYSIS_DISPLAY → FACESWAP_LOADING
         → BILLBOARD → VIDEO_PENDING → VIDEO_READY

An ERROR overlay can sit on top of ANALYZING or FACESWAP_LOADING; RETRY
re-enters the failed step and START_OVER clears the session from anywhere.

`transition` returns the next SessionData plus the side effects the
orchestrator must perform. Events a state does not accept leave the session
untouched.
"""

import logging
from typing import Callable, Optional

from ..models import VideoStatus, VideoTask
from .models import Effect, Event, EventKind, SessionData, SessionState

logger = logging.getLogger(__name__)

Result = tuple[SessionData, list[Effect]]
Handler = Callable[[SessionData, Event], Optional[Result]]

S = SessionState


def _move(session: SessionData, state: SessionState, *effects: Effect, **updates) -> Result:
    return session.model_copy(update={"state": state, **updates}), list(effects)


def _reset(session: SessionData) -> Result:
    return SessionData(state=S.INTRO, epoch=session.epoch + 1), [Effect.STOP_POLLING, Effect.RELEASE_CAMERA]


# ── Handlers ─────────────────────────────────────────────────────────────────

def _on_catalog_ready(session: SessionData, event: Event) -> Optional[Result]:
    if session.state is S.INIT:
        return _move(session, S.INTRO)
    return None


def _on_start(session: SessionData, event: Event) -> Optional[Result]:
    if session.state is S.INTRO:
        return _move(session, S.CAMERA)
    return None


def _on_camera_cancelled(session: SessionData, event: Event) -> Optional[Result]:
    if session.state is S.CAMERA:
        return _move(session, S.INTRO, Effect.RELEASE_CAMERA)
    return None


def _on_photo_captured(session: SessionData, event: Event) -> Optional[Result]:
    if session.state is S.CAMERA and event.photo:
        return _move(
            session, S.ANALYZING, Effect.RELEASE_CAMERA, Effect.RUN_ANALYSIS,
            photo=event.photo, analysis=None, template=None,
        )
    return None


def _on_analysis_succeeded(session: SessionData, event: Event) -> Optional[Result]:
    if session.state is S.ANALYZING and event.analysis and event.template:
        return _move(session, S.ANALYSIS_DISPLAY, analysis=event.analysis, template=event.template)
    return None


def _on_step_failed(step: SessionState) -> Handler:
    def handler(session: SessionData, event: Event) -> Optional[Result]:
        if session.state is step and event.error:
            return _move(session, step, error=event.error)
        return None
    return handler


def _on_reveal_complete(session: SessionData, event: Event) -> Optional[Result]:
    if session.state is S.ANALYSIS_DISPLAY and session.analysis and session.photo:
        return _move(session, S.FACESWAP_LOADING, Effect.RUN_FACESWAP)
    return None


def _on_faceswap_succeeded(session: SessionData, event: Event) -> Optional[Result]:
    if session.state is S.FACESWAP_LOADING and event.billboard:
        return _move(session, S.BILLBOARD, Effect.SUBMIT_VIDEO, billboard=event.billboard)
    return None


def _on_video_submitted(session: SessionData, event: Event) -> Optional[Result]:
    # One submission per session
    if session.state is S.BILLBOARD and session.video is None and event.task_id:
        return _move(session, S.VIDEO_PENDING, Effect.START_POLLING, video=VideoTask(task_id=event.task_id))
    return None


def _on_video_submit_failed(session: SessionData, event: Event) -> Optional[Result]:
    if session.state is S.BILLBOARD:
        logger.info("Video submission failed; staying on the billboard")
        return session, []
    return None


def _on_video_polled(session: SessionData, event: Event) -> Optional[Result]:
    if session.state is not S.VIDEO_PENDING or session.video is None or event.poll is None:
        return None

    poll = event.poll
    video = session.video.model_copy(update={"status": poll.status})

    if poll.status is VideoStatus.SUCCEEDED and poll.video_url:
        video = video.model_copy(update={"video_url": poll.video_url})
        return _move(session, S.VIDEO_READY, Effect.STOP_POLLING, video=video)

    if poll.status is VideoStatus.FAILED:
        return _move(session, S.BILLBOARD, Effect.STOP_POLLING, video=video)

    return _move(session, S.VIDEO_PENDING, video=video)


def _on_retry(session: SessionData, event: Event) -> Optional[Result]:
    error = session.error
    if error is None or not error.retryable:
        return None

    if session.state in (S.ANALYZING, S.ANALYSIS_DISPLAY):
        if session.photo:
            return _move(session, S.ANALYZING, Effect.RUN_ANALYSIS, error=None)
        return _move(session, S.CAMERA, error=None)

    if session.state is S.FACESWAP_LOADING:
        if session.analysis and session.photo and session.template:
            return _move(session, S.FACESWAP_LOADING, Effect.RUN_FACESWAP, error=None)
        return _move(session, S.CAMERA, error=None)

    return _reset(session)


def _on_start_over(session: SessionData, event: Event) -> Optional[Result]:
    return _reset(session)


_HANDLERS: dict[EventKind, Handler] = {
    EventKind.CATALOG_READY: _on_catalog_ready,
    EventKind.START: _on_start,
    EventKind.CAMERA_CANCELLED: _on_camera_cancelled,
    EventKind.PHOTO_CAPTURED: _on_photo_captured,
    EventKind.ANALYSIS_SUCCEEDED: _on_analysis_succeeded,
    EventKind.ANALYSIS_FAILED: _on_step_failed(S.ANALYZING),
    EventKind.REVEAL_COMPLETE: _on_reveal_complete,
    EventKind.FACESWAP_SUCCEEDED: _on_faceswap_succeeded,
    EventKind.FACESWAP_FAILED: _on_step_failed(S.FACESWAP_LOADING),
    EventKind.VIDEO_SUBMITTED: _on_video_submitted,
    EventKind.VIDEO_SUBMIT_FAILED: _on_video_submit_failed,
    EventKind.VIDEO_POLLED: _on_video_polled,
    EventKind.RETRY: _on_retry,
    EventKind.START_OVER: _on_start_over,
}

# Accepted while the ERROR overlay is showing
_ERROR_EVENTS = {EventKind.RETRY, EventKind.START_OVER}


def transition(session: SessionData, event: Event) -> Result:
    """Apply one event. Unaccepted or stale events return the session unchanged."""
    if event.epoch is not None and event.epoch != session.epoch:
        logger.debug(f"Dropping stale {event.kind.value} (epoch {event.epoch} != {session.epoch})")
        return session, []

    if session.error is not None and event.kind not in _ERROR_EVENTS:
        logger.debug(f"Ignoring {event.kind.value} while in error overlay")
        return session, []

    result = _HANDLERS[event.kind](session, event)
    if result is None:
        logger.debug(f"Ignoring {event.kind.value} in state {session.state.value}")
        return session, []
    return result
