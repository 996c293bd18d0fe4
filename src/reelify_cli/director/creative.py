"""Keyword classification of free-text prompts into creative direction.

Each axis is an ordered table of ``(keywords, category)`` rows. Matching is a
case-insensitive substring test; the first row with any matching keyword wins
and the axis default applies when nothing matches.
"""

from __future__ import annotations

import re
from typing import Literal, Optional

from pydantic import BaseModel, Field

Style = Literal["cinematic", "dynamic", "dramatic", "minimal", "gentle"]
Movement = Literal["pan", "zoom", "dolly", "orbit", "static"]
Mood = Literal["energetic", "mysterious", "uplifting", "tense", "calm"]

STYLE_TABLE: list[tuple[tuple[str, ...], Style]] = [
    (("cinematic", "movie", "film"), "cinematic"),
    (("dynamic", "energetic", "fast"), "dynamic"),
    (("dramatic", "intense", "powerful"), "dramatic"),
    (("minimal", "simple", "clean"), "minimal"),
]
DEFAULT_STYLE: Style = "gentle"

MOVEMENT_TABLE: list[tuple[tuple[str, ...], Movement]] = [
    (("pan", "panorama"), "pan"),
    (("zoom", "push in", "zoom in"), "zoom"),
    (("dolly", "slide", "move"), "dolly"),
    (("orbit", "rotate", "spin"), "orbit"),
]
DEFAULT_MOVEMENT: Movement = "static"

MOOD_TABLE: list[tuple[tuple[str, ...], Mood]] = [
    (("energetic", "exciting", "vibrant"), "energetic"),
    (("mysterious", "dark", "shadow"), "mysterious"),
    (("uplifting", "bright", "positive"), "uplifting"),
    (("tense", "intense", "urgent"), "tense"),
]
DEFAULT_MOOD: Mood = "calm"

# Additive: every row that matches contributes its tag.
EFFECT_TABLE: list[tuple[tuple[str, ...], str]] = [
    (("fade",), "fade"),
    (("blur", "depth of field"), "blur"),
    (("grain", "film grain"), "film_grain"),
    (("color grade", "color grading"), "color_grade"),
]

DURATION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(\d+)\s*seconds?", re.IGNORECASE),
    re.compile(r"(\d+)\s*sec", re.IGNORECASE),
    re.compile(r"duration[:\s]+(\d+)", re.IGNORECASE),
    re.compile(r"for\s+(\d+)\s*seconds?", re.IGNORECASE),
]


class CreativeDirection(BaseModel):
    style: Style = DEFAULT_STYLE
    movement: Movement = DEFAULT_MOVEMENT
    mood: Mood = DEFAULT_MOOD
    effects: list[str] = Field(default_factory=list)


def classify(text: str, table, default):
    lowered = text.lower()
    for keywords, category in table:
        if any(k in lowered for k in keywords):
            return category
    return default


def collect_effects(text: str) -> list[str]:
    lowered = text.lower()
    return [tag for keywords, tag in EFFECT_TABLE if any(k in lowered for k in keywords)]


def analyze_prompt(prompt: str) -> CreativeDirection:
    return CreativeDirection(
        style=classify(prompt, STYLE_TABLE, DEFAULT_STYLE),
        movement=classify(prompt, MOVEMENT_TABLE, DEFAULT_MOVEMENT),
        mood=classify(prompt, MOOD_TABLE, DEFAULT_MOOD),
        effects=collect_effects(prompt),
    )


def extract_duration(prompt: str, max_duration: float = 30) -> Optional[int]:
    """Return the first duration mention in ``(0, max_duration]``, else None.

    Patterns are tried in order and only the first match of each is considered.
    """
    for pattern in DURATION_PATTERNS:
        match = pattern.search(prompt)
        if match:
            value = int(match.group(1))
            if 0 < value <= max_duration:
                return value
    return None
