"""Emotion labels, sources and the shared precedence order.

``EMOTIONS`` is declared in precedence order. Every place that needs to pick
one label out of a tie (text classification, dashboard dominant emotion,
facial-expression reduction) walks this tuple and keeps the first label with
the highest value, so results never depend on dict insertion order.
"""

import math
from typing import Dict, Iterable, Optional

EMOTIONS = (
    "happy",
    "sad",
    "angry",
    "surprised",
    "fearful",
    "disgusted",
    "stressed",
    "neutral",
)

SOURCES = ("camera", "text")

DEFAULT_EMOTION = "neutral"

MIN_CONFIDENCE = 0
MAX_CONFIDENCE = 100


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (``round`` uses banker's rounding)."""
    return int(math.floor(value + 0.5))


def validate_emotion(emotion: str) -> str:
    """Return *emotion* lower-cased, or raise ValueError if it is not a known label."""
    if not isinstance(emotion, str):
        raise ValueError(f"emotion must be a string, got {type(emotion).__name__}")
    label = emotion.strip().lower()
    if label not in EMOTIONS:
        raise ValueError(f"unknown emotion {emotion!r}; expected one of {', '.join(EMOTIONS)}")
    return label


def validate_source(source: str) -> str:
    if source not in SOURCES:
        raise ValueError(f"unknown source {source!r}; expected one of {', '.join(SOURCES)}")
    return source


def clamp_confidence(confidence) -> float:
    """Clamp a numeric confidence into [0, 100]. Integers stay integers."""
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise ValueError(f"confidence must be numeric, got {confidence!r}")
    if math.isnan(confidence):
        raise ValueError("confidence must not be NaN")
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


def pick_dominant(values: Dict[str, float], labels: Iterable[str] = EMOTIONS) -> Optional[str]:
    """Highest-valued label, first in *labels* order on ties. None if *values* is empty."""
    best: Optional[str] = None
    for label in labels:
        if label not in values:
            continue
        if best is None or values[label] > values[best]:
            best = label
    return best
