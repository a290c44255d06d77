"""
Engagement score — decaying popularity used to order a page of entries.

  engagement = likes + comment_weight * comments
  age_hours  = max(min_age_hours, hours since created_at)
  score      = (engagement + 1) / (age_hours + age_offset_hours) ** gravity

Defaults (gravity 1.5, offset 2h, comment weight 2, age floor 0.5h) match the
rankings already shown to users; change them through settings, not here.
"""
from dataclasses import dataclass
from datetime import datetime, timezone

from watchhive.config import settings


@dataclass(frozen=True)
class ScoreWeights:
    gravity: float = 1.5
    age_offset_hours: float = 2.0
    comment_weight: float = 2.0
    min_age_hours: float = 0.5

    @classmethod
    def from_settings(cls) -> "ScoreWeights":
        return cls(
            gravity=settings.score_gravity,
            age_offset_hours=settings.score_age_offset_hours,
            comment_weight=settings.score_comment_weight,
            min_age_hours=settings.score_min_age_hours,
        )


DEFAULT_WEIGHTS = ScoreWeights()


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def engagement_score(
    like_count: int,
    comment_count: int,
    created_at: datetime,
    now: datetime,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> float:
    engagement = like_count + weights.comment_weight * comment_count
    age_hours = (_as_utc(now) - _as_utc(created_at)).total_seconds() / 3600
    age_hours = max(weights.min_age_hours, age_hours)
    return (engagement + 1) / (age_hours + weights.age_offset_hours) ** weights.gravity
