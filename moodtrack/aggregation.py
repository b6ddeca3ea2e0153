"""Dashboard statistics over a set of observations.

Bucketing uses each observation's own timestamp offset: an event recorded
at 09:00+02:00 lands in hour slot 9 no matter where the dashboard runs.
"Today" is the calendar day of the reference time ``now``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from .labels import DEFAULT_EMOTION, EMOTIONS, pick_dominant, round_half_up
from .observation import Observation, as_aware, local_now

HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7
WEEKDAY_NAMES = (
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
)


@dataclass(frozen=True)
class EmotionShare:
    count: int
    percentage: int

    def to_dict(self) -> Dict:
        return {"count": self.count, "percentage": self.percentage}


@dataclass(frozen=True)
class Statistics:
    """Raw dashboard numbers. Recomputed on demand, never stored."""
    total_detections: int = 0
    today_detections: int = 0
    dominant_emotion: str = DEFAULT_EMOTION
    average_confidence: int = 0
    emotion_distribution: Dict[str, EmotionShare] = field(
        default_factory=lambda: {e: EmotionShare(0, 0) for e in EMOTIONS}
    )
    hourly_activity: List[int] = field(default_factory=lambda: [0] * HOURS_PER_DAY)
    weekly_trend: List[int] = field(default_factory=lambda: [0] * DAYS_PER_WEEK)

    def to_dict(self) -> Dict:
        return {
            "total_detections": self.total_detections,
            "today_detections": self.today_detections,
            "dominant_emotion": self.dominant_emotion,
            "average_confidence": self.average_confidence,
            "emotion_distribution": {
                e: share.to_dict() for e, share in self.emotion_distribution.items()
            },
            "hourly_activity": list(self.hourly_activity),
            "weekly_trend": list(self.weekly_trend),
        }


def day_of_week(ts: datetime) -> int:
    """0 = Sunday … 6 = Saturday."""
    return (ts.weekday() + 1) % DAYS_PER_WEEK


def scale_series(series: Sequence[int]) -> List[int]:
    """Scale counts to 0–100 relative to the series maximum (divisor at least 1).

    Presentation helper for bar charts; ``compute`` itself returns raw counts.
    """
    peak = max(max(series, default=0), 1)
    return [round_half_up(v / peak * 100) for v in series]


class AggregationEngine:
    """Pure reductions from observations to Statistics."""

    @staticmethod
    def compute(
        observations: Iterable[Observation],
        now: Optional[datetime] = None,
    ) -> Statistics:
        """Summarize *observations* relative to reference time *now*.

        The input is only iterated, never modified. The result does not
        depend on input order.
        """
        items = list(observations)
        if not items:
            return Statistics()

        now = as_aware(now) if now else local_now()
        today = now.date()
        week_ago = now - timedelta(days=DAYS_PER_WEEK)

        counts = {e: 0 for e in EMOTIONS}
        hourly = [0] * HOURS_PER_DAY
        weekly = [0] * DAYS_PER_WEEK
        today_count = 0
        confidence_sum = 0.0

        for obs in items:
            ts = obs.timestamp
            counts[obs.emotion] += 1
            confidence_sum += obs.confidence
            hourly[ts.hour] += 1
            if ts.date() == today:
                today_count += 1
            if ts >= week_ago:
                weekly[day_of_week(ts)] += 1

        total = len(items)
        distribution = {
            e: EmotionShare(count=c, percentage=round_half_up(c / total * 100))
            for e, c in counts.items()
        }
        return Statistics(
            total_detections=total,
            today_detections=today_count,
            dominant_emotion=pick_dominant(counts),
            average_confidence=round_half_up(confidence_sum / total),
            emotion_distribution=distribution,
            hourly_activity=hourly,
            weekly_trend=weekly,
        )

    @staticmethod
    def filter(
        observations: Iterable[Observation],
        source: Optional[str] = None,
        emotion: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[Observation]:
        """Subset of *observations* matching every given criterion, order kept.

        *since* is inclusive, *until* exclusive.
        """
        since = as_aware(since) if since else None
        until = as_aware(until) if until else None
        return [
            o for o in observations
            if (source is None or o.source == source)
            and (emotion is None or o.emotion == emotion)
            and (since is None or o.timestamp >= since)
            and (until is None or o.timestamp < until)
        ]


def compute(observations: Iterable[Observation], now: Optional[datetime] = None) -> Statistics:
    return AggregationEngine.compute(observations, now)
