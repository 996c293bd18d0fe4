from __future__ import annotations

from typing import Callable, Optional

EasingFn = Callable[[float], float]


def linear(t: float) -> float:
    return t


def ease_in(t: float) -> float:
    return t * t


def ease_out(t: float) -> float:
    return t * (2 - t)


def ease_in_out(t: float) -> float:
    if t < 0.5:
        return 2 * t * t
    return -1 + (4 - 2 * t) * t


def spring(t: float) -> float:
    # Cubic ease-out; not a physical spring model.
    return 1 - (1 - t) ** 3


EASINGS: dict[str, EasingFn] = {
    "linear": linear,
    "easeIn": ease_in,
    "easeOut": ease_out,
    "easeInOut": ease_in_out,
    "spring": spring,
}


def apply_easing(t: float, easing: Optional[str]) -> float:
    """Apply a named easing; unknown or missing names fall back to linear."""
    return EASINGS.get(easing or "linear", linear)(t)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t
