"""
BillboardSession drives one user session through the pipeline.

  capture → analyze → select template → face swap + caption (parallel)
          → billboard → video submit → poll every POLL_INTERVAL → video

Transitions come from the pure state machine in `state.py`; this class
performs the side effects it asks for with asyncio tasks and owns the
session's resources (poll task, camera handle).
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol, Sequence
from uuid import uuid4

from .. import gemini, metrics, nanobanana, runway
from ..errors import BillboardError
from ..images import load_template_image, strip_data_uri
from ..models import FaceSwapResult, TemplateRecord
from ..prompts import DEFAULT_VIDEO_DESCRIPTION, video_prompt
from ..templates import TEMPLATES, select_template
from .models import Effect, Event, EventKind, SessionData, SessionError, SessionState
from .state import transition

logger = logging.getLogger(__name__)

POLL_INTERVAL = 5  # seconds
PERSON_COUNT = 1


class CameraHandle(Protocol):
    def release(self) -> None:
        ...


@dataclass
class SessionResources:
    """Resources a session holds; each is released exactly once."""

    poll_task: Optional[asyncio.Task] = None
    camera: Optional[CameraHandle] = None

    def start_polling(self, task: asyncio.Task):
        self.cancel_polling()
        self.poll_task = task

    def cancel_polling(self):
        task, self.poll_task = self.poll_task, None
        # The loop stops itself when the cancel comes from its own dispatch
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def release_camera(self):
        camera, self.camera = self.camera, None
        if camera is not None:
            camera.release()

    def release_all(self):
        self.cancel_polling()
        self.release_camera()


async def _static_catalog() -> list[TemplateRecord]:
    return list(TEMPLATES)


class BillboardSession:
    """
    One end-user interaction, from intro screen to finished video.

    The presentation layer calls the user-event methods (start, capture,
    reveal_complete, retry, start_over) and renders `data.view`; provider
    calls run in the background and feed their results back as events.

    Usage:
        session = BillboardSession()
        await session.boot()
        session.start()
        session.capture("data:image/jpeg;base64,...")
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        *,
        analyzer: Optional[Callable[[str], Awaitable]] = None,
        face_swapper: Optional[Callable[[str, str, str], Awaitable[str]]] = None,
        captioner: Optional[Callable[[str], Awaitable[str]]] = None,
        video_submitter: Optional[Callable[[str, str], Awaitable[str]]] = None,
        video_poller: Optional[Callable[[str], Awaitable]] = None,
        template_loader: Callable[[str], tuple[str, str]] = load_template_image,
        catalog_loader: Callable[[], Awaitable[Sequence[TemplateRecord]]] = _static_catalog,
        poll_interval: float = POLL_INTERVAL,
        person_count: int = PERSON_COUNT,
    ):
        self.session_id = session_id or uuid4().hex
        self.data = SessionData()
        self.last_active = time.monotonic()
        self.resources = SessionResources()
        self.catalog: list[TemplateRecord] = list(TEMPLATES)
        self.poll_interval = poll_interval
        self.person_count = person_count

        self._analyzer = analyzer or gemini.analyze_user
        self._face_swapper = face_swapper or nanobanana.face_swap
        self._captioner = captioner or gemini.generate_billboard_message
        self._video_submitter = video_submitter or runway.generate_video
        self._video_poller = video_poller or runway.get_video_status
        self._template_loader = template_loader
        self._catalog_loader = catalog_loader

        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[Callable[[SessionData], None]] = []

    @property
    def state(self) -> SessionState:
        return self.data.state

    def subscribe(self, listener: Callable[[SessionData], None]):
        self._listeners.append(listener)

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def boot(self) -> SessionData:
        """Prefetch the catalog (best effort) and move to the intro screen."""
        metrics.inc_counter("sessions.started")
        try:
            catalog = await self._catalog_loader()
            if catalog:
                self.catalog = list(catalog)
        except Exception as e:
            logger.warning(f"[{self.session_id}] Catalog prefetch failed, using built-in templates: {e}")
        return self.dispatch(Event(kind=EventKind.CATALOG_READY))

    async def wait_idle(self):
        """Wait for in-flight provider calls (not the poll loop) to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self):
        """Abandon the session: stop polling, release the camera, drop pending calls."""
        self.resources.release_all()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    # ── User events ──────────────────────────────────────────────────────

    def start(self) -> SessionData:
        return self.dispatch(Event(kind=EventKind.START))

    def attach_camera(self, camera: CameraHandle):
        """Hand over the camera stream; it is released on capture or cancel."""
        self.resources.release_camera()
        self.resources.camera = camera

    def capture(self, photo: str) -> SessionData:
        if not strip_data_uri(photo or ""):
            raise ValueError("Empty image data after stripping data URI prefix.")
        return self.dispatch(Event(kind=EventKind.PHOTO_CAPTURED, photo=photo))

    def cancel_camera(self) -> SessionData:
        return self.dispatch(Event(kind=EventKind.CAMERA_CANCELLED))

    def reveal_complete(self) -> SessionData:
        return self.dispatch(Event(kind=EventKind.REVEAL_COMPLETE))

    def retry(self) -> SessionData:
        return self.dispatch(Event(kind=EventKind.RETRY))

    def start_over(self) -> SessionData:
        return self.dispatch(Event(kind=EventKind.START_OVER))

    # ── Dispatch ─────────────────────────────────────────────────────────

    def dispatch(self, event: Event) -> SessionData:
        self.last_active = time.monotonic()
        before = self.data
        self.data, effects = transition(before, event)

        if self.data is not before:
            logger.info(
                f"[{self.session_id}] {before.view} --{event.kind.value}--> {self.data.view}"
                + (f" ({self.data.error.message})" if self.data.error and not before.error else "")
            )

        for effect in effects:
            self._perform(effect)

        for listener in self._listeners:
            listener(self.data)
        return self.data

    def _perform(self, effect: Effect):
        data = self.data
        if effect is Effect.RUN_ANALYSIS:
            self._spawn(self._run_analysis(data.epoch, data.photo))
        elif effect is Effect.RUN_FACESWAP:
            self._spawn(self._run_faceswap(data.epoch, data.photo, data.template))
        elif effect is Effect.SUBMIT_VIDEO:
            mood = data.analysis.mood if data.analysis else None
            self._spawn(self._submit_video(data.epoch, data.billboard, mood))
        elif effect is Effect.START_POLLING:
            task = asyncio.create_task(self._poll_loop(data.epoch, data.video.task_id))
            self.resources.start_polling(task)
        elif effect is Effect.STOP_POLLING:
            self.resources.cancel_polling()
        elif effect is Effect.RELEASE_CAMERA:
            self.resources.release_camera()

    def _spawn(self, coro):
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ── Steps ────────────────────────────────────────────────────────────

    async def _run_analysis(self, epoch: int, photo: str):
        try:
            analysis = await self._analyzer(strip_data_uri(photo))
            template = select_template(self.person_count, analysis.mood_text(), self.catalog)
        except BillboardError as e:
            logger.error(f"[{self.session_id}] Analysis failed: {e}")
            self.dispatch(Event(kind=EventKind.ANALYSIS_FAILED, epoch=epoch, error=SessionError.from_exception(e)))
            return
        except Exception as e:
            logger.exception(f"[{self.session_id}] Analysis failed unexpectedly: {e}")
            self.dispatch(Event(kind=EventKind.ANALYSIS_FAILED, epoch=epoch, error=SessionError.from_exception(e)))
            return

        self.dispatch(Event(kind=EventKind.ANALYSIS_SUCCEEDED, epoch=epoch, analysis=analysis, template=template))

    async def _run_faceswap(self, epoch: int, photo: str, template: TemplateRecord):
        try:
            template_b64, template_mime = self._template_loader(template.filename)
            # Both requests are in flight before either is awaited
            image, message = await asyncio.gather(
                self._face_swapper(strip_data_uri(photo), template_b64, template_mime),
                self._captioner(template.description),
            )
        except BillboardError as e:
            logger.error(f"[{self.session_id}] Face swap failed: {e}")
            self.dispatch(Event(kind=EventKind.FACESWAP_FAILED, epoch=epoch, error=SessionError.from_exception(e)))
            return
        except Exception as e:
            logger.exception(f"[{self.session_id}] Face swap failed unexpectedly: {e}")
            self.dispatch(Event(kind=EventKind.FACESWAP_FAILED, epoch=epoch, error=SessionError.from_exception(e)))
            return

        metrics.inc_counter("sessions.billboards")
        self.dispatch(Event(
            kind=EventKind.FACESWAP_SUCCEEDED,
            epoch=epoch,
            billboard=FaceSwapResult(image=image, billboard_message=message),
        ))

    async def _submit_video(self, epoch: int, billboard: FaceSwapResult, mood: Optional[str]):
        prompt = video_prompt(mood, billboard.billboard_message or DEFAULT_VIDEO_DESCRIPTION)
        try:
            task_id = await self._video_submitter(billboard.image, prompt)
        except Exception as e:
            logger.warning(f"[{self.session_id}] Video submission failed, keeping billboard: {e}")
            self.dispatch(Event(kind=EventKind.VIDEO_SUBMIT_FAILED, epoch=epoch))
            return

        self.dispatch(Event(kind=EventKind.VIDEO_SUBMITTED, epoch=epoch, task_id=task_id))

    def _still_polling(self, epoch: int) -> bool:
        return self.data.epoch == epoch and self.data.state is SessionState.VIDEO_PENDING

    async def _poll_loop(self, epoch: int, task_id: str):
        # One immediate poll, then one every poll_interval
        while self._still_polling(epoch):
            try:
                poll = await self._video_poller(task_id)
            except Exception as e:
                logger.warning(f"[{self.session_id}] Video poll failed, retrying in {self.poll_interval}s: {e}")
            else:
                self.dispatch(Event(kind=EventKind.VIDEO_POLLED, epoch=epoch, poll=poll))

            if not self._still_polling(epoch):
                break
            await asyncio.sleep(self.poll_interval)

        if self.data.video and self.data.video.status.is_terminal:
            metrics.inc_counter(f"sessions.video_{self.data.video.status.value.lower()}")
