"""
RunwayML image-to-video — Gen-3 Alpha Turbo via REST.

submit → task id, then poll /tasks/{id} until SUCCEEDED or FAILED.
"""

import os
import time
import logging
from typing import Callable, Optional

import httpx

from . import metrics
from .errors import ConfigurationError, MalformedResponseError, TransportError
from .models import VideoPoll, VideoStatus

logger = logging.getLogger(__name__)

RUNWAY_API_BASE = "https://api.dev.runwayml.com/v1"
RUNWAY_VERSION = "2024-11-06"
VIDEO_MODEL = "gen3a_turbo"
VIDEO_DURATION = 10
VIDEO_RATIO = "1280:768"
REQUEST_TIMEOUT = 30
PROVIDER = "RunwayML"


def _headers(api_key: Optional[str]) -> dict:
    key = api_key or os.environ.get("RUNWAYML_API_SECRET", "")
    if not key:
        raise ConfigurationError("RUNWAYML_API_SECRET environment variable is not set", PROVIDER)
    return {
        "Authorization": f"Bearer {key}",
        "X-Runway-Version": RUNWAY_VERSION,
    }


async def _request(
    method: str,
    path: str,
    api_key: Optional[str],
    transport: Optional[httpx.AsyncBaseTransport],
    **kwargs,
) -> dict:
    headers = _headers(api_key)

    metrics.inc_counter("requests.runwayml")
    started = time.monotonic()
    try:
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT, transport=transport) as client:
            resp = await client.request(method, f"{RUNWAY_API_BASE}{path}", headers=headers, **kwargs)
    except httpx.HTTPError as e:
        metrics.record_error("runwayml", "transport", str(e))
        raise TransportError(f"{PROVIDER} request failed: {e}", PROVIDER) from e
    finally:
        metrics.record_latency("runwayml", (time.monotonic() - started) * 1000)

    if not resp.is_success:
        logger.error(f"{PROVIDER} API error {resp.status_code}: {resp.text[:500]}")
        metrics.record_error("runwayml", "transport", f"HTTP {resp.status_code}")
        raise TransportError(
            f"{PROVIDER} API error: {resp.status_code} {resp.reason_phrase}",
            PROVIDER,
            status_code=resp.status_code,
            body=resp.text[:500],
        )

    try:
        return resp.json()
    except ValueError as e:
        raise MalformedResponseError(f"{PROVIDER} returned a non-JSON body", PROVIDER) from e


async def generate_video(
    image: str,
    prompt: str,
    *,
    api_key: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """
    Submit an image-to-video task.

    Args:
        image:  Public URL or data URI of the source image.
        prompt: Motion/style prompt.

    Returns:
        The provider task id.
    """
    payload = {
        "model": VIDEO_MODEL,
        "promptImage": image,
        "promptText": prompt,
        "duration": VIDEO_DURATION,
        "ratio": VIDEO_RATIO,
    }

    logger.info(f"Submitting image-to-video task. Prompt: {prompt[:80]}...")
    result = await _request("POST", "/image_to_video", api_key, transport, json=payload)

    task_id = result.get("id") if isinstance(result, dict) else None
    if not task_id:
        logger.error(f"No task ID in {PROVIDER} response: {result}")
        raise MalformedResponseError(f"No task ID returned from {PROVIDER} API", PROVIDER)

    logger.info(f"Task submitted successfully. Task ID: {task_id}")
    return str(task_id)


def _output_from_string(output) -> Optional[str]:
    return output if isinstance(output, str) and output else None


def _output_from_list(output) -> Optional[str]:
    if isinstance(output, list) and output and isinstance(output[0], str):
        return output[0]
    return None


# Tried in order; first non-empty URL wins.
OUTPUT_STRATEGIES: tuple[Callable[[object], Optional[str]], ...] = (
    _output_from_list,
    _output_from_string,
)


def parse_task_status(result: dict) -> VideoPoll:
    """Decode a task record. A missing status is reported as UNKNOWN."""
    raw_status = result.get("status")
    if raw_status is None or raw_status == "":
        raw_status = "UNKNOWN"
    output = result.get("output")

    video_url = None
    for strategy in OUTPUT_STRATEGIES:
        video_url = strategy(output)
        if video_url:
            break

    return VideoPoll(
        status=VideoStatus.parse(raw_status),
        raw_status=str(raw_status),
        video_url=video_url,
    )


async def get_video_status(
    task_id: str,
    *,
    api_key: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> VideoPoll:
    """Poll the status of a video task."""
    logger.info(f"Polling task status for: {task_id}")
    result = await _request("GET", f"/tasks/{task_id}", api_key, transport)

    poll = parse_task_status(result if isinstance(result, dict) else {})
    logger.info(f"Task {task_id} status: {poll.raw_status}" + (f" | Video URL: {poll.video_url}" if poll.video_url else ""))
    return poll
