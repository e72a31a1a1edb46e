"""
Nano Banana Pro face swap — nano-banana-pro-preview via the Gemini endpoint.

Takes the user's face from their photo and applies it to the person in a
template image, keeping the template's background, pose, clothing, and
lighting intact.
"""

import logging
from typing import Optional

import httpx

from .gemini import check_refusal, extract_inline_data, generate_content
from .images import to_data_uri
from .prompts import FACE_SWAP_PROMPT

logger = logging.getLogger(__name__)

FACE_SWAP_MODEL = "nano-banana-pro-preview"
FACE_SWAP_TIMEOUT = 120
PROVIDER = "Nanobanana"


async def face_swap(
    user_image_base64: str,
    template_image_base64: str,
    template_mime_type: str = "image/jpeg",
    *,
    api_key: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """
    Composite the user's face onto the template.

    Args:
        user_image_base64:     Raw base64 user photo (no data URI prefix).
        template_image_base64: Raw base64 template image (no data URI prefix).
        template_mime_type:    MIME type of the template bytes (jpeg, webp, png).

    Returns:
        The billboard as a data URI (data:image/jpeg;base64,...).

    Raises:
        ModerationRefusal: The model declined (finishReason SAFETY / OTHER).
        MalformedResponseError: No image payload under either field spelling.
    """
    parts = [
        {"inline_data": {"mime_type": "image/jpeg", "data": user_image_base64}},
        {"inline_data": {"mime_type": template_mime_type, "data": template_image_base64}},
        {"text": FACE_SWAP_PROMPT},
    ]

    logger.info(f"Sending face swap request to {FACE_SWAP_MODEL} (template {template_mime_type})...")
    result = await generate_content(
        FACE_SWAP_MODEL,
        parts,
        {"response_modalities": ["IMAGE", "TEXT"], "temperature": 0.7},
        provider=PROVIDER,
        api_key=api_key,
        transport=transport,
        timeout=FACE_SWAP_TIMEOUT,
    )

    check_refusal(result, PROVIDER)
    image_data = extract_inline_data(result, PROVIDER)

    logger.info("Face swap completed successfully")
    return to_data_uri(image_data)
