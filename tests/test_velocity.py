from datetime import datetime, timedelta, timezone

import pytest

from api_changelog.analytics.velocity import VelocityCalculator
from api_changelog.config.models import AnalyticsConfig, VelocityConfig
from api_changelog.model.base import Change, ChangeCategory, ChangeType, Changelog

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _changelog(day: int, changes: int, breaking: int = 0) -> Changelog:
    items = [
        Change(type=ChangeType.ADDED, category=ChangeCategory.ENDPOINT, path=f"endpoint:/r{day}-{i}[GET]")
        for i in range(changes - breaking)
    ]
    items += [
        Change(type=ChangeType.REMOVED, category=ChangeCategory.ENDPOINT, path=f"endpoint:/gone{day}-{i}[GET]")
        for i in range(breaking)
    ]
    return Changelog(api_name="pets", generated_at=BASE + timedelta(days=day), changes=items)


class TestVelocity:
    def test_empty(self):
        velocity = VelocityCalculator().calculate([])
        assert velocity.total_releases == 0
        assert velocity.changes_per_day == 0.0

    def test_rates(self):
        history = [_changelog(0, 4, breaking=1), _changelog(10, 6, breaking=1), _changelog(20, 10, breaking=2)]
        velocity = VelocityCalculator().calculate(history)

        assert velocity.span_days == 20
        assert velocity.total_releases == 3
        assert velocity.total_changes == 20
        assert velocity.total_breaking_changes == 4
        assert velocity.changes_per_day == pytest.approx(1.0)
        assert velocity.changes_per_week == pytest.approx(7.0)
        assert velocity.changes_per_month == pytest.approx(30.0)
        assert velocity.changes_per_quarter == pytest.approx(90.0)
        assert velocity.breaking_changes_per_release == pytest.approx(4 / 3)
        assert velocity.average_days_between_releases == pytest.approx(10.0)
        assert velocity.period_start == BASE
        assert velocity.period_end == BASE + timedelta(days=20)

    def test_same_day_history_uses_one_day_span(self):
        velocity = VelocityCalculator().calculate([_changelog(0, 3), _changelog(0, 2)])
        assert velocity.span_days == 1
        assert velocity.changes_per_day == pytest.approx(5.0)

    def test_changes_per_period(self):
        history = [_changelog(0, 5), _changelog(10, 5)]
        assert VelocityCalculator().changes_per_period(history, 14) == pytest.approx(14.0)


class TestAcceleration:
    def test_accelerating(self):
        history = [_changelog(0, 1), _changelog(1, 1), _changelog(2, 5), _changelog(3, 5)]
        calc = VelocityCalculator()
        velocity = calc.calculate(history)
        assert velocity.accelerating is True
        assert velocity.acceleration_rate == pytest.approx(4.0)

    def test_steady(self):
        history = [_changelog(d, 2) for d in range(4)]
        velocity = VelocityCalculator().calculate(history)
        assert velocity.accelerating is False
        assert velocity.acceleration_rate == pytest.approx(0.0)

    def test_too_short(self):
        history = [_changelog(0, 1), _changelog(1, 1), _changelog(2, 9)]
        assert VelocityCalculator().calculate(history).accelerating is False

    def test_quiet_first_half(self):
        history = [_changelog(0, 0), _changelog(1, 0), _changelog(2, 1), _changelog(3, 1)]
        velocity = VelocityCalculator().calculate(history)
        assert velocity.accelerating is True
        assert velocity.acceleration_rate == 1.0

    def test_ratio_from_config(self):
        config = AnalyticsConfig(velocity=VelocityConfig(acceleration_ratio=3.0))
        history = [_changelog(0, 2), _changelog(1, 2), _changelog(2, 5), _changelog(3, 5)]
        assert VelocityCalculator(config).calculate(history).accelerating is False
        assert VelocityCalculator().calculate(history).accelerating is True
