"""
Template Catalog — pre-analyzed billboard templates and mood-based selection.

Metadata was produced once by inspecting each template image, so selection
never needs a model call at runtime.
"""

import re
import logging
from typing import Optional, Sequence

from .models import TemplateRecord

logger = logging.getLogger(__name__)

MIN_KEYWORD_LENGTH = 3

TEMPLATES: list[TemplateRecord] = [
    TemplateRecord(
        filename="001.jpg",
        person_count=1,
        mood="luxury fashion",
        colors="warm orange/brown",
        aspect_ratio="16:9",
        description=(
            "Woman with horse in an elegant luxury fashion setting. Warm orange and brown "
            "tones evoke sophistication and high-end lifestyle branding."
        ),
    ),
    TemplateRecord(
        filename="001.webp",
        person_count=1,
        mood="elegant natural",
        colors="warm natural greens",
        aspect_ratio="4:3",
        description=(
            "Woman in a lush garden with Hermes-style luxury aesthetic. Warm natural tones "
            "with soft greenery create an organic yet refined atmosphere."
        ),
    ),
    TemplateRecord(
        filename="002.jpg",
        person_count=1,
        mood="athletic dramatic",
        colors="dark dramatic",
        aspect_ratio="4:3",
        description=(
            "Female athlete in a Nike sports campaign setting. Dark, dramatic lighting with "
            "high-contrast shadows conveys power and determination."
        ),
    ),
    TemplateRecord(
        filename="002.webp",
        person_count=1,
        mood="sporty bold",
        colors="dark contrast",
        aspect_ratio="4:3",
        description=(
            "Sporty campaign image with bold dark contrast tones. Athletic energy with clean "
            "modern styling."
        ),
    ),
    TemplateRecord(
        filename="003.webp",
        person_count=4,
        mood="high fashion editorial",
        colors="beige/ocean blue",
        aspect_ratio="16:9",
        description=(
            "Four women in a high fashion editorial by the ocean. Soft beige and ocean blue "
            "palette creates a breezy yet glamorous group composition."
        ),
    ),
    TemplateRecord(
        filename="004.jpg",
        person_count=1,
        mood="artistic luxe",
        colors="dark teal/sparkle",
        aspect_ratio="16:9",
        description=(
            "Woman adorned with jewelry in an artistic, luxurious portrait. Dark teal "
            "background with sparkle accents evokes opulence and mystery."
        ),
    ),
    TemplateRecord(
        filename="005.jpg",
        person_count=2,
        mood="classic warm",
        colors="beige vintage",
        aspect_ratio="16:9",
        description=(
            "Elderly couple in a classic, warm-toned portrait. Beige vintage palette radiates "
            "timeless love and understated elegance."
        ),
    ),
    TemplateRecord(
        filename="006.jpg",
        person_count=2,
        mood="eclectic fun",
        colors="colorful vibrant",
        aspect_ratio="16:9",
        description=(
            "Man and woman on a colorful rooftop setting. Eclectic, fun energy with vibrant "
            "colors creates a playful and youthful campaign vibe."
        ),
    ),
    TemplateRecord(
        filename="007.jpg",
        person_count=2,
        mood="luxury couple",
        colors="earth brown/gold",
        aspect_ratio="16:9",
        description=(
            "Woman and man in Gucci-style luxury campaign. Earth brown and gold tones convey "
            "sophisticated, high-end couple branding."
        ),
    ),
]

DEFAULT_DESCRIPTION = "Luxury billboard advertisement"


def get_template(filename: str, catalog: Optional[Sequence[TemplateRecord]] = None) -> Optional[TemplateRecord]:
    """Look up a template by filename."""
    for template in catalog if catalog is not None else TEMPLATES:
        if template.filename == filename:
            return template
    return None


def describe_template(filename: str) -> str:
    template = get_template(filename)
    return template.description if template else DEFAULT_DESCRIPTION


def _mood_keywords(mood: Optional[str]) -> list[str]:
    if not mood or not mood.strip():
        return []
    words = re.split(r"[\s,]+", mood.lower())
    return [w for w in words if len(w) >= MIN_KEYWORD_LENGTH]


def _score(template: TemplateRecord, keywords: list[str]) -> int:
    # Plain substring containment: "red" also matches inside "bored".
    haystack = f"{template.mood} {template.colors} {template.description}".lower()
    return sum(1 for keyword in keywords if keyword in haystack)


def select_template(
    person_count: int,
    mood: Optional[str] = None,
    catalog: Optional[Sequence[TemplateRecord]] = None,
) -> TemplateRecord:
    """
    Pick the best matching template for a subject count and free-text mood.

    Candidates narrow from exact person count, to templates with room for at
    least that many people, to the whole catalog. Mood keywords (3+ letters)
    score each candidate; ties keep catalog order.

    Raises:
        ValueError: If the catalog is empty.
    """
    catalog = list(catalog if catalog is not None else TEMPLATES)
    if not catalog:
        raise ValueError("Template catalog is empty")

    candidates = [t for t in catalog if t.person_count == person_count]
    if not candidates:
        candidates = [t for t in catalog if t.person_count >= person_count]
    if not candidates:
        candidates = catalog

    keywords = _mood_keywords(mood)
    if not keywords:
        return candidates[0]

    # sorted() is stable, so equal scores keep catalog order
    ranked = sorted(candidates, key=lambda t: _score(t, keywords), reverse=True)
    best = ranked[0]

    logger.info(f"Template selected: {best.filename} (score={_score(best, keywords)}, keywords={keywords})")
    return best
