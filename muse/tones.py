"""Muse tone lookup table: prompt phrase, image style suffix, persona and poem temperature."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from core import MuseTone


@dataclass(frozen=True)
class ToneProfile:
    tone: MuseTone
    persona: str
    phrase: str
    image_style: str
    poem_temperature: float


TONE_PROFILES: Dict[MuseTone, ToneProfile] = {
    MuseTone.SYNTHESIS: ToneProfile(
        tone=MuseTone.SYNTHESIS,
        persona="The Synthesis",
        phrase="balanced synthesis: insight + creativity + next steps",
        image_style="thoughtful mixed-media composition, layered textures, balanced warm and cool light",
        poem_temperature=0.9,
    ),
    MuseTone.ANALYST: ToneProfile(
        tone=MuseTone.ANALYST,
        persona="The Analyst",
        phrase="crisp, pattern-forward, specific, pragmatic",
        image_style="clean information design, geometric structure, precise lines, muted palette",
        poem_temperature=0.4,
    ),
    MuseTone.POET: ToneProfile(
        tone=MuseTone.POET,
        persona="The Poet",
        phrase="lyrical, metaphor-forward, tender, surprising",
        image_style="impressionist art style, soft brushstrokes, dreamy atmosphere, gentle pastel light",
        poem_temperature=0.9,
    ),
    MuseTone.VISUALIST: ToneProfile(
        tone=MuseTone.VISUALIST,
        persona="The Visualist",
        phrase="sensory, cinematic, image-forward, color + composition aware",
        image_style="cinematic photography, dramatic lighting, rich color grading, shallow depth of field",
        poem_temperature=0.9,
    ),
    MuseTone.NARRATOR: ToneProfile(
        tone=MuseTone.NARRATOR,
        persona="The Narrator",
        phrase="cinematic narrator, saga-forward, voice-first, dramatic clarity",
        image_style="epic storybook illustration, sweeping vista, golden hour, painterly detail",
        poem_temperature=0.9,
    ),
}


def get_tone_profile(tone: Any) -> ToneProfile:
    """Resolve a tone (enum or raw string) to its profile."""
    return TONE_PROFILES[MuseTone.parse(tone)]


def tone_phrase(tone: Any) -> str:
    return f"Tone: {get_tone_profile(tone).phrase}."


def enhance_image_prompt(prompt: str, tone: Any) -> str:
    """Append the tone's fixed stylistic suffix to an image prompt."""
    base = " ".join(str(prompt or "").split()).rstrip(" ,.;")
    style = get_tone_profile(tone).image_style
    if not base:
        return style
    return f"{base}, {style}"
