from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from api_changelog.analytics.models import ApiEvolution, StabilityGrade
from api_changelog.analytics.service import AnalyticsService
from api_changelog.core.errors import AnalyticsError, ErrorCode
from api_changelog.model.base import (
    ApiSpec,
    Change,
    ChangeCategory,
    ChangeType,
    Changelog,
    Endpoint,
    Parameter,
    RiskLevel,
)
from api_changelog.model.loader import load_spec

FIXTURES = Path(__file__).parent / "fixtures"
BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _snapshots() -> list[ApiSpec]:
    v1 = load_spec(FIXTURES / "petstore_v1.yaml")
    v2 = load_spec(FIXTURES / "petstore_v2.yaml")
    v3 = v2.model_copy(
        update={
            "version": "2.1.0",
            "parsed_at": datetime(2024, 5, 1, tzinfo=timezone.utc),
            "endpoints": [*v2.endpoints, Endpoint(path="/owners/{ownerId}", method="GET", description="One owner")],
        }
    )
    return [v1, v2, v3]


def _spec_with(total: int, deprecated: int, version: str = "1.0.0") -> ApiSpec:
    endpoints = [
        Endpoint(path=f"/r{i}", method="GET", description=f"resource {i}", deprecated=i < deprecated)
        for i in range(total)
    ]
    return ApiSpec(name="svc", version=version, endpoints=endpoints)


def _versioned(version: str, endpoints: int, parsed_at: datetime | None = None) -> ApiSpec:
    return ApiSpec(
        name="svc",
        version=version,
        parsed_at=parsed_at,
        endpoints=[Endpoint(path=f"/r{i}", method="GET", description=f"resource {i}") for i in range(endpoints)],
    )


def _with_required_params(version: str, count: int) -> ApiSpec:
    params = [Parameter(name=f"p{i}", required=True, description=f"p{i}") for i in range(count)]
    return ApiSpec(
        name="svc",
        version=version,
        endpoints=[Endpoint(path="/pets", method="GET", description="pets", parameters=params)],
    )


def _removal(day: int, name: str, api: str) -> Changelog:
    change = Change(type=ChangeType.REMOVED, category=ChangeCategory.ENDPOINT, path=f"endpoint:/{name}[GET]", endpoint=f"GET /{name}")
    return Changelog(api_name=api, generated_at=BASE + timedelta(days=day), changes=[change])


class TestSpecMetrics:
    def test_aggregate_is_additive(self):
        service = AnalyticsService()
        a, b = _spec_with(10, 0), _spec_with(15, 0)
        assert service.aggregate_metrics([a, b]).total_endpoints == 25
        assert service.aggregate_metrics([b, a]).total_endpoints == 25

    def test_compare_specs_is_new_minus_old(self):
        diff = AnalyticsService().compare_specs(_spec_with(10, 2), _spec_with(15, 3, version="2.0.0"))
        assert diff.total_endpoints == 5
        assert diff.deprecated_endpoints == 1

    def test_technical_debt(self):
        spec = load_spec(FIXTURES / "petstore_v2.yaml")
        debt = AnalyticsService().analyze_technical_debt(spec)
        assert debt.deprecated_endpoints_count == 1
        assert debt.api_name == "Petstore"


class TestBuildHistory:
    def test_dated_by_newer_snapshot(self):
        history = AnalyticsService().build_history(_snapshots())
        assert len(history) == 2
        assert history[0].generated_at == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert history[1].generated_at == datetime(2024, 5, 1, tzinfo=timezone.utc)
        assert history[0].risk_assessment.level == RiskLevel.HIGH
        assert [c.to_version for c in history] == ["2.0.0", "2.1.0"]

    def test_explicit_timestamps(self):
        stamps = [BASE, BASE + timedelta(days=3)]
        history = AnalyticsService().build_history(_snapshots(), generated_at=stamps)
        assert [c.generated_at for c in history] == stamps

    def test_single_snapshot_has_no_transitions(self):
        assert AnalyticsService().build_history(_snapshots()[:1]) == []

    def test_mixed_and_missing_timestamps(self):
        service = AnalyticsService()
        specs = [
            _versioned("1.0.0", 2, parsed_at=datetime(2024, 1, 1)),
            _versioned("2.0.0", 3),
            _versioned("3.0.0", 4, parsed_at=datetime(2024, 6, 1, tzinfo=timezone.utc)),
        ]
        history = service.build_history(specs)

        # the undated transition borrows the old snapshot's timestamp
        assert history[0].dated is False
        assert history[0].generated_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert history[1].dated is True
        assert service.calculate_stability(history).transitions_analyzed == 2
        assert len(service.analyze_risk_trend(history).data_points) == 2

    def test_undated_snapshots_keep_their_order(self):
        specs = [_versioned("1.0.0", 1), _versioned("2.0.0", 2), _versioned("3.0.0", 3)]
        history = AnalyticsService().build_history(specs)
        assert [c.to_version for c in history] == ["2.0.0", "3.0.0"]
        assert all(c.dated is False for c in history)
        assert history[0].generated_at <= history[1].generated_at


class TestSpecEvolution:
    def test_exact_endpoint_counts(self):
        evolution = AnalyticsService().analyze_spec_evolution(_snapshots())

        assert [v.version for v in evolution.versions] == ["2.0.0", "2.1.0"]
        assert [v.endpoint_count for v in evolution.versions] == [4, 5]
        assert [v.breaking_changes for v in evolution.versions] == [2, 0]
        assert evolution.versions[0].risk_score == 65
        assert evolution.endpoint_growth == 1
        assert evolution.total_breaking_changes == 2

    def test_undated_middle_snapshot(self):
        specs = [
            _versioned("1.0.0", 2, parsed_at=datetime(2024, 1, 1, tzinfo=timezone.utc)),
            _versioned("2.0.0", 5),
            _versioned("3.0.0", 9, parsed_at=datetime(2024, 6, 1, tzinfo=timezone.utc)),
        ]
        evolution = AnalyticsService().analyze_spec_evolution(specs)
        assert [(v.version, v.endpoint_count) for v in evolution.versions] == [("2.0.0", 5), ("3.0.0", 9)]
        assert evolution.endpoint_growth == 7

    def test_empty(self):
        assert AnalyticsService().analyze_spec_evolution([]) == ApiEvolution()

    def test_single_snapshot(self):
        evolution = AnalyticsService().analyze_spec_evolution(_snapshots()[:1])
        assert evolution.versions == []

    def test_report(self):
        report = AnalyticsService().generate_spec_evolution_report(_snapshots())
        assert report.api_name == "Petstore"
        assert report.versions_analyzed == 2
        assert report.metrics.total_endpoints == 5
        assert report.evolution.endpoint_growth == 1


class TestHistoryAnalytics:
    def test_strict_risk_trend_needs_enough_points(self):
        history = AnalyticsService().build_history(_snapshots()[:2])
        with pytest.raises(AnalyticsError) as exc:
            AnalyticsService().analyze_risk_trend(history, strict=True)
        assert exc.value.code == ErrorCode.INSUFFICIENT_DATA
        assert exc.value.details == {"operation": "risk trend", "required": 3, "actual": 1}

    def test_change_metrics(self):
        service = AnalyticsService()
        history = service.build_history(_snapshots())
        assert service.change_metrics(history).total_changes == sum(len(c.changes) for c in history)
        by_period = service.change_metrics(history, period_days=7)
        assert sum(m.transitions for m in by_period.values()) == 2

    def test_compare_apis_ranks_most_stable_first(self):
        histories = {
            "shaky": [_removal(0, "a", "shaky"), _removal(1, "b", "shaky")],
            "calm": [Changelog(api_name="calm", generated_at=BASE)],
        }
        scores = AnalyticsService().compare_apis(histories)
        assert list(scores) == ["calm", "shaky"]
        assert scores["calm"].grade == StabilityGrade.A

    def test_undated_snapshots_are_not_penalised_for_timing(self):
        service = AnalyticsService()
        specs = [_with_required_params("1.0.0", 0), _with_required_params("2.0.0", 1), _with_required_params("3.0.0", 2)]
        stability = service.calculate_stability(service.build_history(specs))

        assert stability.breaking_changes == 2
        assert stability.time_gap_score == 100.0
        # 0.40 * 0 + 0.30 * 100 + 0.15 * 100 + 0.15 * 100
        assert stability.score == 60
        assert stability.grade == StabilityGrade.D

    def test_stability_of_petstore(self):
        service = AnalyticsService()
        stability = service.calculate_stability(service.build_history(_snapshots()))
        assert stability.transitions_analyzed == 2
        assert stability.breaking_changes == 2
        assert stability.score < 100
