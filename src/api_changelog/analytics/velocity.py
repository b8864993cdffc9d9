"""Change velocity: how fast an API changes over its history."""

from api_changelog.config.models import AnalyticsConfig
from api_changelog.model.base import Changelog
from .history import breaking_count, prepare_history
from .models import ChangeVelocity

DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30
DAYS_PER_QUARTER = 90


class VelocityCalculator:
    def __init__(self, config: AnalyticsConfig | None = None):
        self.config = config or AnalyticsConfig()

    def calculate(self, history: list[Changelog] | None) -> ChangeVelocity:
        ordered = prepare_history(history)
        if not ordered:
            return ChangeVelocity()

        total_changes = sum(len(c.changes) for c in ordered)
        total_breaking = sum(breaking_count(c) for c in ordered)

        first, last = ordered[0].generated_at, ordered[-1].generated_at
        span_days = max(1, (last - first).days)
        per_day = total_changes / span_days

        return ChangeVelocity(
            span_days=span_days,
            total_releases=len(ordered),
            total_changes=total_changes,
            total_breaking_changes=total_breaking,
            changes_per_day=per_day,
            changes_per_week=per_day * DAYS_PER_WEEK,
            changes_per_month=per_day * DAYS_PER_MONTH,
            changes_per_quarter=per_day * DAYS_PER_QUARTER,
            breaking_changes_per_release=total_breaking / len(ordered),
            average_days_between_releases=self._average_days_between(ordered),
            accelerating=self.is_accelerating(ordered),
            acceleration_rate=self.acceleration_rate(ordered),
            period_start=first,
            period_end=last,
        )

    def changes_per_period(self, history: list[Changelog] | None, period_days: int) -> float:
        return self.calculate(history).changes_per_day * period_days

    def is_accelerating(self, ordered: list[Changelog]) -> bool:
        """Second half of the history has notably more changes than the first."""
        if len(ordered) < 4:
            return False
        first, second = _halves(ordered)
        if first == 0:
            return second > 0
        return second / first > self.config.velocity.acceleration_ratio

    def acceleration_rate(self, ordered: list[Changelog]) -> float:
        """Relative growth of changes per release, second half vs first half."""
        if len(ordered) < 4:
            return 0.0
        midpoint = len(ordered) // 2
        first, second = _halves(ordered)
        first_avg = first / midpoint
        second_avg = second / (len(ordered) - midpoint)
        if first_avg == 0:
            return 1.0 if second_avg > 0 else 0.0
        return (second_avg - first_avg) / first_avg

    def _average_days_between(self, ordered: list[Changelog]) -> float:
        if len(ordered) < 2:
            return 0.0
        total = (ordered[-1].generated_at - ordered[0].generated_at).total_seconds()
        return total / 86400 / (len(ordered) - 1)


def _halves(ordered: list[Changelog]) -> tuple[int, int]:
    midpoint = len(ordered) // 2
    first = sum(len(c.changes) for c in ordered[:midpoint])
    second = sum(len(c.changes) for c in ordered[midpoint:])
    return first, second
