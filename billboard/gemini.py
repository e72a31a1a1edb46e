"""
Gemini integration for photo analysis and billboard captions.

- Analysis: Gemini 2.0 Flash (vision) via REST — structured JSON judgment of the user photo
- Caption:  Gemini 2.0 Flash (text) — one-line Korean billboard tagline, never fatal

Also hosts the generateContent plumbing and response decoders shared with
the Nano Banana face-swap client, which runs on the same endpoint.
"""

import os
import re
import json
import time
import logging
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from . import metrics
from .errors import (
    ConfigurationError,
    MalformedResponseError,
    ModerationRefusal,
    TransportError,
)
from .models import UserAnalysis
from .prompts import ANALYSIS_PROMPT, DEFAULT_BILLBOARD_MESSAGE, caption_prompt

logger = logging.getLogger(__name__)

API_BASE = "https://generativelanguage.googleapis.com/v1beta"
ANALYSIS_MODEL = "gemini-2.0-flash"
REQUEST_TIMEOUT = 60

REFUSAL_REASONS = {"SAFETY", "OTHER"}

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def _api_url(model: str) -> str:
    return f"{API_BASE}/models/{model}:generateContent"


def _require_key(api_key: Optional[str]) -> str:
    key = api_key or os.environ.get("GEMINI_API_KEY", "")
    if not key:
        raise ConfigurationError("GEMINI_API_KEY environment variable is not set", "Gemini")
    return key


async def generate_content(
    model: str,
    parts: list,
    config: dict | None = None,
    *,
    provider: str = "Gemini",
    api_key: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: float = REQUEST_TIMEOUT,
) -> dict:
    """
    Call the Gemini generateContent REST endpoint.

    Raises:
        ConfigurationError: GEMINI_API_KEY missing.
        TransportError: Network failure or non-2xx response (body kept for diagnosis).
        MalformedResponseError: 2xx response that is not a JSON object.
    """
    key = _require_key(api_key)
    label = provider.lower()

    body: dict = {"contents": [{"parts": parts}]}
    if config:
        body["generationConfig"] = config

    metrics.inc_counter(f"requests.{label}")
    started = time.monotonic()
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.post(_api_url(model), params={"key": key}, json=body)
    except httpx.HTTPError as e:
        metrics.record_error(label, "transport", str(e))
        raise TransportError(f"{provider} request failed: {e}", provider) from e
    finally:
        metrics.record_latency(label, (time.monotonic() - started) * 1000)

    if not resp.is_success:
        logger.error(f"{provider} API error {resp.status_code}: {resp.text[:500]}")
        metrics.record_error(label, "transport", f"HTTP {resp.status_code}")
        raise TransportError(
            f"{provider} API error: {resp.status_code} {resp.reason_phrase}",
            provider,
            status_code=resp.status_code,
            body=resp.text[:500],
        )

    try:
        result = resp.json()
    except ValueError as e:
        metrics.record_error(label, "malformed", "non-JSON body")
        raise MalformedResponseError(f"{provider} returned a non-JSON body", provider) from e

    if not isinstance(result, dict):
        metrics.record_error(label, "malformed", "non-object body")
        raise MalformedResponseError(f"{provider} returned a non-object JSON body", provider)
    return result


# =========================================================================
# Response decoding
# =========================================================================

def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def _first_candidate(result: dict) -> dict:
    candidates = _as_list(_as_dict(result).get("candidates"))
    return _as_dict(candidates[0]) if candidates else {}


def _candidate_parts(result: dict) -> list:
    parts = _as_list(_as_dict(_first_candidate(result).get("content")).get("parts"))
    return [p for p in parts if isinstance(p, dict)]


def check_refusal(result: dict, provider: str = "Gemini") -> None:
    """Raise ModerationRefusal when the model declined to generate."""
    candidate = _first_candidate(result)
    if candidate:
        reason = str(candidate.get("finishReason") or candidate.get("finish_reason") or "")
        refused = reason in REFUSAL_REASONS
    else:
        # Prompt blocked before any candidate was produced
        result = _as_dict(result)
        feedback = _as_dict(result.get("promptFeedback") or result.get("prompt_feedback"))
        reason = str(feedback.get("blockReason") or feedback.get("block_reason") or "")
        refused = bool(reason)

    if refused:
        logger.error(f"[{provider}] Model refused generation. Reason: {reason}")
        metrics.record_error(provider.lower(), "moderation", reason)
        raise ModerationRefusal(
            f"The request was declined by the {provider} model's content policy ({reason}). "
            "Please try again.",
            provider,
            finish_reason=reason,
        )


def _inline_payload(inline) -> Optional[str]:
    data = _as_dict(inline).get("data")
    return data if isinstance(data, str) else None


def _snake_case_inline(part: dict) -> Optional[str]:
    return _inline_payload(part.get("inline_data"))


def _camel_case_inline(part: dict) -> Optional[str]:
    return _inline_payload(part.get("inlineData"))


# Tried in order for each part; first non-empty payload wins.
INLINE_DATA_STRATEGIES: tuple[Callable[[dict], Optional[str]], ...] = (
    _snake_case_inline,
    _camel_case_inline,
)


def extract_inline_data(result: dict, provider: str = "Gemini") -> str:
    """Return the first inline binary payload (base64) in the response."""
    for part in _candidate_parts(result):
        for strategy in INLINE_DATA_STRATEGIES:
            data = strategy(part)
            if data:
                logger.info(f"[{provider}] Found image data via {strategy.__name__}")
                return data

    logger.error(f"[{provider}] No image data found in response: {json.dumps(result)[:500]}")
    metrics.record_error(provider.lower(), "malformed", "no inline data")
    raise MalformedResponseError(f"No image data returned from {provider} (no output in response)", provider)


def extract_text(result: dict) -> str:
    """Concatenate every text part of the first candidate."""
    return "".join(p["text"] for p in _candidate_parts(result) if isinstance(p.get("text"), str))


def parse_analysis(text: str) -> UserAnalysis:
    """
    Parse model text into a UserAnalysis, unwrapping a ```json fence if present.

    Raises:
        MalformedResponseError: Unparsable JSON or a missing/empty field.
    """
    json_string = text.strip()
    match = _CODE_FENCE.search(json_string)
    if match:
        json_string = match.group(1).strip()

    try:
        return UserAnalysis.model_validate(json.loads(json_string))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Failed to parse analysis response: {e}\nRaw: {json_string[:500]}")
        metrics.record_error("gemini", "malformed", str(e))
        raise MalformedResponseError(f"Malformed analysis response: {e}", "Gemini") from e


# =========================================================================
# 1. Analyze User — Gemini Flash (Vision)
# =========================================================================

async def analyze_user(
    image_base64: str,
    *,
    api_key: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> UserAnalysis:
    """
    Analyze the user's photo: witty Korean comment, mood, dominant color and
    suggested moods for template matching.

    Args:
        image_base64: Raw base64 image data (no data URI prefix).
    """
    parts = [
        {"inline_data": {"mime_type": "image/jpeg", "data": image_base64}},
        {"text": ANALYSIS_PROMPT},
    ]

    logger.info(f"Sending user analysis request to {ANALYSIS_MODEL}...")
    result = await generate_content(
        ANALYSIS_MODEL,
        parts,
        {"temperature": 0.8, "maxOutputTokens": 1024},
        api_key=api_key,
        transport=transport,
    )
    check_refusal(result)

    text = extract_text(result)
    if not text:
        logger.error(f"No text content in Gemini response: {json.dumps(result)[:500]}")
        raise MalformedResponseError("Malformed analysis response: no text content", "Gemini")

    analysis = parse_analysis(text)
    logger.info(
        f"User analysis: mood={analysis.mood}, color={analysis.dominant_color}, "
        f"suggested={analysis.suggested_moods}"
    )
    return analysis


# =========================================================================
# 2. Billboard Caption — Gemini Flash (text)
# =========================================================================

async def generate_billboard_message(
    template_description: str,
    *,
    api_key: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """
    Generate a short tagline for the finished billboard.

    Non-critical: any failure returns DEFAULT_BILLBOARD_MESSAGE.
    """
    parts = [{"text": caption_prompt(template_description)}]

    try:
        result = await generate_content(
            ANALYSIS_MODEL,
            parts,
            {"temperature": 0.9, "maxOutputTokens": 100},
            api_key=api_key,
            transport=transport,
        )
        check_refusal(result)
        message = extract_text(result).strip()
    except Exception as e:
        logger.warning(f"Billboard message generation failed, using default: {e}")
        return DEFAULT_BILLBOARD_MESSAGE

    if not message:
        return DEFAULT_BILLBOARD_MESSAGE

    logger.info(f"Generated billboard message: {message}")
    return message
