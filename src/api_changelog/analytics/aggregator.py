"""Aggregation over histories: evolution, change metrics, cross-API comparison."""

from collections import defaultdict
from datetime import date, timedelta

import structlog

from api_changelog.config.models import AnalyticsConfig
from api_changelog.core.errors import AnalyticsError
from api_changelog.model.base import ChangeCategory, ChangeType, Changelog
from .history import breaking_count, prepare_history, risk_score_of
from .models import ApiEvolution, ChangeMetrics, StabilityScore, VersionSummary
from .stability import StabilityScorer

log = structlog.get_logger()


class HistoryAggregator:
    def aggregate(self, history: list[Changelog] | None, baseline_endpoints: int | None = None) -> ApiEvolution:
        """Per-version summary in chronological order.

        With `baseline_endpoints` (the endpoint count before the first
        transition) each version also carries its endpoint count, tracked as
        baseline plus endpoint additions minus endpoint removals.
        """
        ordered = prepare_history(history)
        if not ordered:
            return ApiEvolution()

        versions: list[VersionSummary] = []
        endpoint_count = baseline_endpoints
        total_changes = 0
        total_breaking = 0

        for changelog in ordered:
            endpoint_changes = [c for c in changelog.changes if c.category == ChangeCategory.ENDPOINT]
            added = sum(1 for c in endpoint_changes if c.type == ChangeType.ADDED)
            removed = sum(1 for c in endpoint_changes if c.type == ChangeType.REMOVED)
            deprecated = sum(1 for c in endpoint_changes if c.type == ChangeType.DEPRECATED)
            modified = len(
                {
                    c.endpoint
                    for c in changelog.changes
                    if c.endpoint is not None
                    and not (c.category == ChangeCategory.ENDPOINT and c.type in (ChangeType.ADDED, ChangeType.REMOVED))
                }
            )
            if endpoint_count is not None:
                endpoint_count = endpoint_count + added - removed

            breaking = breaking_count(changelog)
            total_changes += len(changelog.changes)
            total_breaking += breaking

            versions.append(
                VersionSummary(
                    version=changelog.to_version,
                    release_date=changelog.generated_at.date(),
                    endpoint_count=endpoint_count,
                    total_changes=len(changelog.changes),
                    breaking_changes=breaking,
                    risk_score=risk_score_of(changelog),
                    added_endpoints=added,
                    removed_endpoints=removed,
                    modified_endpoints=modified,
                    deprecated_endpoints=deprecated,
                )
            )

        log.debug("evolution.aggregated", api=ordered[0].api_name, versions=len(versions))

        growth = None
        if baseline_endpoints is not None and endpoint_count is not None:
            growth = endpoint_count - baseline_endpoints

        return ApiEvolution(
            api_name=ordered[0].api_name,
            start_date=ordered[0].generated_at.date(),
            end_date=ordered[-1].generated_at.date(),
            versions=versions,
            total_versions=len(ordered),
            total_changes=total_changes,
            total_breaking_changes=total_breaking,
            average_changes_per_version=total_changes / len(ordered),
            breaking_change_rate=total_breaking / total_changes if total_changes else 0.0,
            endpoint_growth=growth,
        )

    def aggregate_between(self, history: list[Changelog] | None, start: date, end: date) -> ApiEvolution:
        if start > end:
            raise AnalyticsError.aggregation_error("aggregate_between", f"start {start} is after end {end}")
        selected = [c for c in history or [] if start <= c.generated_at.date() <= end]
        return self.aggregate(selected)


class MetricsAggregator:
    def aggregate(self, history: list[Changelog] | None) -> ChangeMetrics:
        ordered = prepare_history(history)
        if not ordered:
            return ChangeMetrics()
        endpoints = {c.endpoint or c.path for changelog in ordered for c in changelog.changes}
        return ChangeMetrics(
            api_name=ordered[0].api_name,
            transitions=len(ordered),
            total_changes=sum(len(c.changes) for c in ordered),
            breaking_changes=sum(breaking_count(c) for c in ordered),
            affected_endpoints=len(endpoints),
        )

    def aggregate_by_period(self, history: list[Changelog] | None, period_days: int) -> dict[date, ChangeMetrics]:
        """Bucket transitions into fixed windows counted from the epoch, oldest first."""
        if period_days <= 0:
            raise AnalyticsError.aggregation_error("aggregate_by_period", f"period must be positive, got {period_days}")
        buckets: dict[date, list[Changelog]] = defaultdict(list)
        for changelog in prepare_history(history):
            buckets[_period_start(changelog.generated_at.date(), period_days)].append(changelog)
        return {
            start: self.aggregate(group).model_copy(update={"period_start": start})
            for start, group in sorted(buckets.items())
        }

    def aggregate_by_week(self, history: list[Changelog] | None) -> dict[date, ChangeMetrics]:
        return self.aggregate_by_period(history, 7)

    def aggregate_by_month(self, history: list[Changelog] | None) -> dict[date, ChangeMetrics]:
        return self.aggregate_by_period(history, 30)

    def averages(self, by_period: dict[date, ChangeMetrics]) -> ChangeMetrics:
        if not by_period:
            return ChangeMetrics()
        count = len(by_period)
        return ChangeMetrics(
            transitions=sum(m.transitions for m in by_period.values()) // count,
            total_changes=sum(m.total_changes for m in by_period.values()) // count,
            breaking_changes=sum(m.breaking_changes for m in by_period.values()) // count,
        )


_EPOCH = date(1970, 1, 1)


def _period_start(day: date, period_days: int) -> date:
    days = (day - _EPOCH).days
    return _EPOCH + timedelta(days=(days // period_days) * period_days)


class ComparisonAggregator:
    """Compare several APIs, each given as its own changelog history."""

    def __init__(self, config: AnalyticsConfig | None = None):
        self.metrics_aggregator = MetricsAggregator()
        self.stability_scorer = StabilityScorer(config)

    def compare_metrics(self, histories: dict[str, list[Changelog]]) -> dict[str, ChangeMetrics]:
        return {
            name: self.metrics_aggregator.aggregate(history).model_copy(update={"api_name": name})
            for name, history in histories.items()
        }

    def compare_stability(self, histories: dict[str, list[Changelog]]) -> dict[str, StabilityScore]:
        return {name: self.stability_scorer.calculate(history) for name, history in histories.items()}

    def rank_by_stability(self, histories: dict[str, list[Changelog]]) -> list[str]:
        """Most stable first; ties keep input order."""
        scores = self.compare_stability(histories)
        return sorted(scores, key=lambda name: -scores[name].score)

    def rank_by_breaking_changes(self, histories: dict[str, list[Changelog]]) -> list[str]:
        """Fewest breaking changes first."""
        metrics = self.compare_metrics(histories)
        return sorted(metrics, key=lambda name: metrics[name].breaking_changes)

    def most_stable(self, histories: dict[str, list[Changelog]]) -> str | None:
        ranked = self.rank_by_stability(histories)
        return ranked[0] if ranked else None

    def least_stable(self, histories: dict[str, list[Changelog]]) -> str | None:
        ranked = self.rank_by_stability(histories)
        return ranked[-1] if ranked else None
