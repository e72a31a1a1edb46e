"""
Image payload helpers — data URI handling and template asset loading.

Binary images travel as base64 text. Inbound payloads may carry a
`data:image/<type>;base64,` prefix which is stripped before they are sent to
a provider; outbound payloads are always re-prefixed as image/jpeg.
"""

import os
import re
import base64
import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .errors import TemplateNotFound

logger = logging.getLogger(__name__)

# ── Config ───────────────────────────────────────────────────────────────────

TEMPLATES_DIR = os.environ.get("BILLBOARD_TEMPLATES_DIR", "public/images")

DATA_URI_PREFIX = re.compile(r"^data:image/[a-zA-Z+.-]+;base64,")
OUTPUT_MIME = "image/jpeg"


def strip_data_uri(image: str) -> str:
    """Return the raw base64 body of a data URI (unchanged if unprefixed)."""
    return DATA_URI_PREFIX.sub("", image, count=1)


def to_data_uri(b64data: str, mime: str = OUTPUT_MIME) -> str:
    return f"data:{mime};base64,{b64data}"


def _guess_mime(filename: str) -> str:
    lower = filename.lower()
    if lower.endswith(".webp"):
        return "image/webp"
    if lower.endswith(".png"):
        return "image/png"
    return "image/jpeg"


def sniff_mime(data: bytes, filename: str = "") -> str:
    """
    Detect the MIME type of an encoded image.

    Pillow reads the container header; when it cannot identify the bytes we
    fall back to the filename extension.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            mime = Image.MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError):
        mime = None

    return mime or _guess_mime(filename)


def load_template_image(filename: str, templates_dir: str | None = None) -> tuple[str, str]:
    """
    Read a template asset from disk.

    The filename is reduced to its basename so callers cannot escape the
    templates directory.

    Returns:
        (base64 data, MIME type)
    """
    safe_name = os.path.basename(filename)
    path = os.path.join(templates_dir or TEMPLATES_DIR, safe_name)

    if not safe_name or not os.path.isfile(path):
        raise TemplateNotFound(f"Template file not found: {safe_name}")

    with open(path, "rb") as fh:
        data = fh.read()

    mime = sniff_mime(data, safe_name)
    logger.info(f"Template image loaded: {safe_name} ({len(data)} bytes, {mime})")
    return base64.b64encode(data).decode("utf-8"), mime
