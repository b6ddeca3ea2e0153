"""Keyword-based emotion classification for free text.

Matching is substring containment: a token scores for a label when any of
that label's keywords occurs inside it, so "unhappy" counts for both happy
and sad, and "sadness" counts for sad. This leniency is intentional and
tests pin it down.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .labels import DEFAULT_EMOTION, EMOTIONS, pick_dominant, round_half_up

EMOTION_KEYWORDS: Dict[str, List[str]] = {
    "happy": [
        "happy", "joy", "excited", "wonderful", "amazing", "great", "fantastic",
        "love", "awesome", "perfect", "brilliant", "excellent", "delighted",
    ],
    "sad": [
        "sad", "depressed", "down", "unhappy", "lonely", "disappointed",
        "heartbroken", "miserable", "gloomy", "blue", "melancholy",
    ],
    "angry": [
        "angry", "mad", "furious", "annoyed", "irritated", "frustrated", "rage",
        "hate", "disgusted", "outraged", "livid",
    ],
    "surprised": [
        "surprised", "shocked", "amazed", "astonished", "stunned", "wow",
        "unbelievable", "incredible", "unexpected",
    ],
    "fearful": [
        "scared", "afraid", "terrified", "anxious", "worried", "nervous", "panic",
        "frightened", "concerned", "uneasy",
    ],
    "disgusted": [
        "disgusted", "sick", "gross", "awful", "terrible", "horrible", "repulsed",
        "revolted", "nasty",
    ],
    "stressed": [
        "stressed", "overwhelmed", "pressure", "deadline", "busy", "exhausted",
        "burnout", "tired", "overworked",
    ],
    "neutral": [
        "okay", "fine", "normal", "regular", "usual", "average", "standard",
        "typical", "ordinary",
    ],
}

FALLBACK_CONFIDENCE = 60
BASE_CONFIDENCE = 40
MAX_TEXT_CONFIDENCE = 90


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one text."""
    emotion: str
    confidence: int
    breakdown: Dict[str, int]
    scores: Dict[str, int] = field(default_factory=dict)
    token_count: int = 0

    def to_dict(self) -> Dict:
        return {
            "emotion": self.emotion,
            "confidence": self.confidence,
            "breakdown": dict(self.breakdown),
        }


class TextClassifier:
    """Deterministic keyword scorer over the eight emotion labels.

    Args:
        keywords: Optional replacement keyword table. Every key must be a
            known label; labels missing from the table simply never score.
    """

    def __init__(self, keywords: Optional[Dict[str, List[str]]] = None):
        table = keywords if keywords is not None else EMOTION_KEYWORDS
        unknown = set(table) - set(EMOTIONS)
        if unknown:
            raise ValueError(f"keyword table has unknown labels: {sorted(unknown)}")
        self.keywords: Dict[str, tuple] = {
            label: tuple(kw.lower() for kw in table.get(label, ()))
            for label in EMOTIONS
        }

    def score(self, tokens: List[str]) -> Dict[str, int]:
        """Raw per-label hit counts for already-lowercased tokens."""
        scores = {label: 0 for label in EMOTIONS}
        for token in tokens:
            for label, kws in self.keywords.items():
                if any(kw in token for kw in kws):
                    scores[label] += 1
        return scores

    def classify(self, text: str) -> ClassificationResult:
        tokens = (text or "").lower().split()
        scores = self.score(tokens)
        max_score = max(scores.values())

        breakdown = {
            label: round_half_up(scores[label] / max(1, max_score) * 100)
            for label in EMOTIONS
        }

        if max_score == 0:
            return ClassificationResult(
                emotion=DEFAULT_EMOTION,
                confidence=FALLBACK_CONFIDENCE,
                breakdown=breakdown,
                scores=scores,
                token_count=len(tokens),
            )

        confidence = min(
            MAX_TEXT_CONFIDENCE,
            max_score / len(tokens) * 100 + BASE_CONFIDENCE,
        )
        return ClassificationResult(
            emotion=pick_dominant(scores),
            confidence=round_half_up(confidence),
            breakdown=breakdown,
            scores=scores,
            token_count=len(tokens),
        )


def classify(text: str) -> ClassificationResult:
    """Classify *text* with the built-in keyword table."""
    return _DEFAULT_CLASSIFIER.classify(text)


_DEFAULT_CLASSIFIER = TextClassifier()
