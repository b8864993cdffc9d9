from datetime import date, datetime, timedelta, timezone

import pytest

from api_changelog.analytics.aggregator import ComparisonAggregator, HistoryAggregator, MetricsAggregator
from api_changelog.core.errors import AnalyticsError, ErrorCode
from api_changelog.model.base import Change, ChangeCategory, ChangeType, Changelog

# buckets are counted from the epoch (a Thursday): Dec 28 - Jan 3, Jan 4 - Jan 10
BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _endpoint_change(change_type: ChangeType, name: str) -> Change:
    return Change(type=change_type, category=ChangeCategory.ENDPOINT, path=f"endpoint:/{name}[GET]", endpoint=f"GET /{name}")


def _param_change(name: str) -> Change:
    return Change(
        type=ChangeType.ADDED,
        category=ChangeCategory.PARAMETER,
        path=f"endpoint:/{name}[GET].parameters.q",
        endpoint=f"GET /{name}",
        new_value={"required": False},
    )


def _changelog(day: int, *changes: Change, version: str | None = None, api: str = "pets") -> Changelog:
    return Changelog(api_name=api, to_version=version, generated_at=BASE + timedelta(days=day), changes=list(changes))


def _history() -> list[Changelog]:
    return [
        _changelog(0, _endpoint_change(ChangeType.ADDED, "a"), _endpoint_change(ChangeType.ADDED, "b"), version="1.1.0"),
        _changelog(
            10,
            _endpoint_change(ChangeType.REMOVED, "a"),
            _endpoint_change(ChangeType.DEPRECATED, "b"),
            _param_change("b"),
            _param_change("c"),
            version="2.0.0",
        ),
    ]


class TestHistoryAggregator:
    def test_empty(self):
        evolution = HistoryAggregator().aggregate([])
        assert evolution.versions == []
        assert evolution.total_versions == 0

    def test_version_summaries(self):
        evolution = HistoryAggregator().aggregate(_history(), baseline_endpoints=3)

        first, second = evolution.versions
        assert first.version == "1.1.0"
        assert first.added_endpoints == 2
        assert first.endpoint_count == 5
        assert second.removed_endpoints == 1
        assert second.deprecated_endpoints == 1
        # GET /b (deprecation + parameter) and GET /c
        assert second.modified_endpoints == 2
        assert second.endpoint_count == 4
        assert second.breaking_changes == 1
        assert second.release_date == date(2024, 1, 11)

    def test_totals(self):
        evolution = HistoryAggregator().aggregate(_history(), baseline_endpoints=3)
        assert evolution.api_name == "pets"
        assert evolution.total_versions == 2
        assert evolution.total_changes == 6
        assert evolution.total_breaking_changes == 1
        assert evolution.average_changes_per_version == pytest.approx(3.0)
        assert evolution.breaking_change_rate == pytest.approx(1 / 6)
        assert evolution.endpoint_growth == 1
        assert evolution.start_date == date(2024, 1, 1)
        assert evolution.end_date == date(2024, 1, 11)

    def test_without_baseline_counts_are_unknown(self):
        evolution = HistoryAggregator().aggregate(_history())
        assert all(v.endpoint_count is None for v in evolution.versions)
        assert evolution.endpoint_growth is None

    def test_aggregate_between(self):
        evolution = HistoryAggregator().aggregate_between(_history(), date(2024, 1, 5), date(2024, 1, 31))
        assert [v.version for v in evolution.versions] == ["2.0.0"]

    def test_aggregate_between_rejects_reversed_range(self):
        with pytest.raises(AnalyticsError) as exc:
            HistoryAggregator().aggregate_between(_history(), date(2024, 2, 1), date(2024, 1, 1))
        assert exc.value.code == ErrorCode.AGGREGATION_ERROR


class TestMetricsAggregator:
    def test_aggregate(self):
        metrics = MetricsAggregator().aggregate(_history())
        assert metrics.transitions == 2
        assert metrics.total_changes == 6
        assert metrics.breaking_changes == 1
        assert metrics.affected_endpoints == 3

    def test_by_week(self):
        history = [_changelog(0, _param_change("a")), _changelog(1, _param_change("b")), _changelog(8, _param_change("c"))]
        by_week = MetricsAggregator().aggregate_by_week(history)
        assert [m.transitions for m in by_week.values()] == [2, 1]
        assert all(m.period_start == start for start, m in by_week.items())
        assert list(by_week) == sorted(by_week)

    def test_by_month(self):
        history = [_changelog(0, _param_change("a")), _changelog(45, _param_change("b"))]
        assert len(MetricsAggregator().aggregate_by_month(history)) == 2

    def test_invalid_period(self):
        with pytest.raises(AnalyticsError) as exc:
            MetricsAggregator().aggregate_by_period(_history(), 0)
        assert exc.value.code == ErrorCode.AGGREGATION_ERROR

    def test_averages(self):
        history = [_changelog(0, _param_change("a"), _param_change("b")), _changelog(8, _param_change("c"))]
        aggregator = MetricsAggregator()
        averages = aggregator.averages(aggregator.aggregate_by_week(history))
        assert averages.transitions == 1
        assert averages.total_changes == 1
        assert aggregator.averages({}).transitions == 0


class TestComparisonAggregator:
    def _histories(self) -> dict[str, list[Changelog]]:
        stable = [_changelog(0, _param_change("a"), api="stable"), _changelog(10, _param_change("b"), api="stable")]
        shaky = [
            _changelog(0, _endpoint_change(ChangeType.REMOVED, "a"), api="shaky"),
            _changelog(1, _endpoint_change(ChangeType.REMOVED, "b"), api="shaky"),
        ]
        return {"shaky": shaky, "stable": stable}

    def test_rank_by_stability(self):
        assert ComparisonAggregator().rank_by_stability(self._histories()) == ["stable", "shaky"]

    def test_most_and_least_stable(self):
        aggregator = ComparisonAggregator()
        assert aggregator.most_stable(self._histories()) == "stable"
        assert aggregator.least_stable(self._histories()) == "shaky"
        assert aggregator.most_stable({}) is None

    def test_rank_by_breaking_changes(self):
        assert ComparisonAggregator().rank_by_breaking_changes(self._histories()) == ["stable", "shaky"]

    def test_compare_metrics_names_each_api(self):
        metrics = ComparisonAggregator().compare_metrics(self._histories())
        assert metrics["shaky"].api_name == "shaky"
        assert metrics["shaky"].breaking_changes == 2
