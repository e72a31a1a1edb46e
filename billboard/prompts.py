"""
Prompt Library — instructions sent to the generative models.

Kept apart from the client plumbing so the wording can evolve on its own.
The face-swap instruction and the video prompt clause order are contracts
with the providers; change them deliberately.
"""

from typing import Optional

# ── Analysis (Gemini Flash) ──────────────────────────────────────────────────

ANALYSIS_PROMPT = """You are a luxury brand concierge with impeccable taste and charm. Analyze this person's photo and respond with ONLY a valid JSON object (no markdown, no code fences).

Your response must be this exact JSON structure:
{
  "wittyComment": "Korean language witty compliment (2-3 sentences). Be elegant, charming, and sophisticated. Comment on their appearance, clothing style, or overall vibe as if you were a luxury fashion house creative director meeting them for the first time. Use refined Korean, not overly casual.",
  "mood": "one word or short phrase describing the overall mood/energy (in English), e.g. 'elegant', 'bold', 'playful', 'dramatic', 'warm'",
  "dominantColor": "the dominant color palette of the person's appearance/clothing (in English), e.g. 'dark navy', 'warm beige', 'vibrant red'",
  "suggestedMoods": ["array", "of", "3-4", "mood keywords in English that would pair well with this person for a billboard campaign"]
}

Be charming and sophisticated in the Korean comment. Make the person feel like a star."""


# ── Billboard caption (Gemini Flash) ─────────────────────────────────────────

DEFAULT_BILLBOARD_MESSAGE = "당신이 주인공인 순간"


def caption_prompt(template_description: str) -> str:
    return (
        "You are a witty luxury billboard copywriter. Generate a SHORT, punchy billboard "
        "tagline (1 line, max 10 words) in Korean for this ad concept:\n\n"
        f'"{template_description}"\n\n'
        "Respond with ONLY the tagline text, nothing else. Be clever, luxurious, and "
        "memorable. The tagline should make someone smile."
    )


# ── Face swap (Nano Banana Pro) ──────────────────────────────────────────────

FACE_SWAP_PROMPT = (
    "Use the SECOND uploaded image as the base and final output. Do not generate a new scene. "
    "Keep the base image exactly the same in background, body, pose, clothing, framing, and "
    "lighting. Use the FIRST uploaded image only as a facial reference. Recreate the face of "
    "the person in the base image so that it closely resembles the facial features of the "
    "person in the reference image. Blend the adjusted face naturally to match skin tone, "
    "lighting, angle, and perspective. Keep the result subtle, realistic, and consistent. "
    "Output the result in 16:9 aspect ratio."
)


# ── Video (Runway Gen-3) ─────────────────────────────────────────────────────

# Checked in order; the first family with a keyword inside the mood wins.
MOOD_MODIFIERS: list[tuple[tuple[str, ...], str]] = [
    (
        ("dramatic", "bold", "power"),
        "dramatic shadow play, intense lighting contrasts, and powerful sweeping camera movement",
    ),
    (
        ("warm", "classic", "vintage"),
        "warm golden light rays, gentle nostalgic haze, and a soft dreamy camera drift",
    ),
    (
        ("playful", "fun", "eclectic"),
        "playful light bounces, vibrant color shifts, and energetic subtle camera movement",
    ),
    (
        ("luxury", "elegant", "luxe"),
        "refined golden highlights, silky smooth transitions, and a prestigious slow dolly reveal",
    ),
    (
        ("athletic", "sport", "energy"),
        "dynamic motion blur, sharp lighting pulses, and an adrenaline-fueled camera sweep",
    ),
    (
        ("natural", "garden", "organic"),
        "gentle breeze effects through foliage, dappled natural light, and a serene floating camera",
    ),
]

NO_MOOD_MODIFIER = "subtle wind effects, gentle light shifts, and elegant movement"
DEFAULT_MOOD_MODIFIER = "subtle wind effects, dramatic lighting shifts, and elegant slow-motion movement"

DEFAULT_SCENE_DETAIL = "The billboard features a striking advertisement."
DEFAULT_VIDEO_DESCRIPTION = "a striking billboard advertisement"


def mood_modifier(mood: Optional[str]) -> str:
    """Map a mood keyword to cinematic motion descriptors."""
    if not mood:
        return NO_MOOD_MODIFIER

    mood_lower = mood.lower()
    for keywords, modifier in MOOD_MODIFIERS:
        if any(keyword in mood_lower for keyword in keywords):
            return modifier

    return DEFAULT_MOOD_MODIFIER


def video_prompt(mood: Optional[str] = None, description: Optional[str] = None) -> str:
    scene_detail = f"The scene features {description}." if description else DEFAULT_SCENE_DETAIL

    return " ".join([
        "Cinematic slow motion.",
        scene_detail,
        f"The billboard advertisement comes alive with {mood_modifier(mood)}.",
        "Dramatic lighting shifts as a camera slowly pulls back to reveal the full scene.",
        "Professional advertising quality with subtle atmospheric effects.",
        "The overall feeling is premium, polished, and captivating.",
    ])
