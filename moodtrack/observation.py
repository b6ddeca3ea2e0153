"""Observation — one recorded emotion-detection event."""

import uuid
from datetime import datetime
from typing import Dict, Optional

from .labels import clamp_confidence, validate_emotion, validate_source


def local_now() -> datetime:
    """Current time, timezone-aware in the local zone."""
    return datetime.now().astimezone()


def as_aware(ts: datetime) -> datetime:
    """Attach the local offset to naive datetimes; aware ones pass through."""
    if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
        return ts.astimezone()
    return ts


class Observation:
    """Immutable emotion observation.

    Attributes
    ----------
    id : str
        Opaque unique id (uuid4 hex unless one is supplied).
    emotion : str
        One of ``moodtrack.labels.EMOTIONS``.
    confidence : float
        Percentage clamped to [0, 100].
    timestamp : datetime
        Timezone-aware creation time. Keeps the offset it was created with.
    source : str
        ``"camera"`` or ``"text"``.
    """

    __slots__ = ("id", "emotion", "confidence", "timestamp", "source")

    def __init__(
        self,
        emotion: str,
        confidence,
        source: str,
        timestamp: Optional[datetime] = None,
        id: Optional[str] = None,
    ):
        set_ = object.__setattr__
        set_(self, "id", id or uuid.uuid4().hex)
        set_(self, "emotion", validate_emotion(emotion))
        set_(self, "confidence", clamp_confidence(confidence))
        set_(self, "timestamp", as_aware(timestamp) if timestamp else local_now())
        set_(self, "source", validate_source(source))

    def __setattr__(self, name, value):
        raise AttributeError(f"Observation is immutable; cannot set {name!r}")

    def __delattr__(self, name):
        raise AttributeError(f"Observation is immutable; cannot delete {name!r}")

    # -- serialisation --------------------------------------------------------

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "emotion": self.emotion,
            "confidence": self.confidence,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, d: Dict) -> "Observation":
        """Rebuild from ``to_dict`` output. Raises KeyError/ValueError/TypeError on bad data."""
        if not isinstance(d, dict):
            raise TypeError(f"observation record must be an object, got {type(d).__name__}")
        ident = d["id"]
        if not isinstance(ident, str) or not ident:
            raise ValueError(f"observation id must be a non-empty string, got {ident!r}")
        return cls(
            emotion=d["emotion"],
            confidence=d["confidence"],
            source=d["source"],
            timestamp=datetime.fromisoformat(d["timestamp"]),
            id=ident,
        )

    # -- value semantics ------------------------------------------------------

    def __eq__(self, other) -> bool:
        if not isinstance(other, Observation):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return (
            f"<Observation {self.id[:8]} {self.emotion} "
            f"conf={self.confidence} src={self.source} at={self.timestamp.isoformat()}>"
        )
