"""Reduce a facial-expression model's output to one (emotion, confidence) pair.

Face models report a probability per expression, e.g.
``{"happy": 0.91, "neutral": 0.06, "sad": 0.01, ...}``. The camera path
records only the strongest expression, as a rounded percentage.
"""

import logging
from typing import Dict, Optional, Tuple

from .labels import EMOTIONS, pick_dominant, round_half_up

logger = logging.getLogger("moodtrack")


def dominant_expression(expressions: Dict[str, float]) -> Optional[Tuple[str, int]]:
    """Strongest known expression and its confidence percentage.

    Labels outside the emotion set and non-numeric scores are ignored.
    Returns None when nothing usable is left (no face detected).
    """
    usable = {}
    for label, prob in (expressions or {}).items():
        key = str(label).lower()
        if key not in EMOTIONS:
            logger.debug("Ignoring unknown expression label %r", label)
            continue
        if isinstance(prob, bool) or not isinstance(prob, (int, float)):
            continue
        usable[key] = float(prob)

    emotion = pick_dominant(usable)
    if emotion is None:
        return None
    return emotion, round_half_up(usable[emotion] * 100)
