from datetime import datetime, timedelta, timezone

import pytest

from api_changelog.analytics.models import StabilityGrade
from api_changelog.analytics.stability import (
    StabilityScorer,
    actual_bump,
    bump_satisfies,
    parse_version,
    round_half_up,
)
from api_changelog.config.models import AnalyticsConfig, StabilityConfig
from api_changelog.model.base import Change, ChangeCategory, ChangeType, Changelog, SemverBump

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _info(n: int = 0) -> Change:
    return Change(type=ChangeType.ADDED, category=ChangeCategory.ENDPOINT, path=f"endpoint:/r{n}[GET]", endpoint=f"GET /r{n}")


def _breaking(n: int = 0) -> Change:
    return Change(
        type=ChangeType.ADDED,
        category=ChangeCategory.PARAMETER,
        path=f"endpoint:/pets[GET].parameters.p{n}",
        endpoint="GET /pets",
        new_value={"name": f"p{n}", "required": True},
    )


def _changelog(day: float, *changes: Change, from_version=None, to_version=None) -> Changelog:
    return Changelog(
        api_name="pets",
        from_version=from_version,
        to_version=to_version,
        generated_at=BASE + timedelta(days=day),
        changes=list(changes),
    )


def _scenario_history() -> list[Changelog]:
    """5 transitions 10 days apart, the 2nd and 4th carrying one breaking change each."""
    return [
        _changelog(0, _info(0)),
        _changelog(10, _breaking(1)),
        _changelog(20, _info(2)),
        _changelog(30, _breaking(3)),
        _changelog(40, _info(4)),
    ]


class TestStabilityScore:
    def test_empty_history_is_perfect(self):
        score = StabilityScorer().calculate([])
        assert score.score == 100
        assert score.grade == StabilityGrade.A
        assert len(score.factors) == 4
        assert StabilityScorer().calculate(None).score == 100

    def test_history_without_breaking_changes(self):
        history = [_changelog(0, _info(0)), _changelog(5, _info(1))]
        score = StabilityScorer().calculate(history)
        assert score.score == 100
        assert score.breaking_changes == 0
        assert score.average_days_between_breaking is None

    def test_weighted_formula_regression(self):
        score = StabilityScorer().calculate(_scenario_history())

        assert score.breaking_change_ratio == pytest.approx(0.4)
        assert score.breaking_ratio_score == pytest.approx(60.0)
        assert score.average_days_between_breaking == pytest.approx(20.0)
        assert score.time_gap_score == pytest.approx(200 / 3)
        assert score.deprecation_score == 100.0
        assert score.semver_score == 100.0
        # 0.40*60 + 0.30*66.67 + 0.15*100 + 0.15*100
        assert score.score == 74
        assert score.grade == StabilityGrade.C
        assert score.score < 100

    def test_factor_contributions_add_up(self):
        score = StabilityScorer().calculate(_scenario_history())
        assert sum(f.weight for f in score.factors) == pytest.approx(1.0)
        assert sum(f.contribution for f in score.factors) == pytest.approx(74.0)

    def test_order_independent(self):
        history = _scenario_history()
        shuffled = [history[3], history[0], history[4], history[2], history[1]]
        assert StabilityScorer().calculate(shuffled) == StabilityScorer().calculate(history)

    def test_input_not_mutated(self):
        history = _scenario_history()
        before = list(history)
        StabilityScorer().calculate(history)
        assert history == before
        assert all(c.risk_assessment is None for c in history)

    def test_alternate_weights(self):
        config = AnalyticsConfig(
            stability=StabilityConfig(
                breaking_ratio_weight=1.0, time_gap_weight=0.0, deprecation_weight=0.0, semver_weight=0.0
            )
        )
        assert StabilityScorer(config).calculate(_scenario_history()).score == 60

    def test_all_breaking_is_failing(self):
        history = [_changelog(0, _breaking(0)), _changelog(1, _breaking(1)), _changelog(2, _breaking(2))]
        score = StabilityScorer().calculate(history)
        assert score.breaking_ratio_score == 0.0
        assert score.grade == StabilityGrade.F
        assert score.is_poor


class TestTimeGap:
    def test_linear_up_to_ideal(self):
        scorer = StabilityScorer()
        assert scorer.time_gap_score(15) == pytest.approx(50.0)
        assert scorer.time_gap_score(30) == 100.0

    def test_clamped_beyond_ideal(self):
        assert StabilityScorer().time_gap_score(90) == 100.0

    def test_not_measurable(self):
        assert StabilityScorer().time_gap_score(None) == 100.0

    def test_undated_transitions_give_no_gap_evidence(self):
        history = [
            _changelog(0, _breaking(0)).model_copy(update={"dated": False}),
            _changelog(0.001, _breaking(1)).model_copy(update={"dated": False}),
            _changelog(0.002, _breaking(2)).model_copy(update={"dated": False}),
        ]
        stability = StabilityScorer().calculate(history)
        assert stability.average_days_between_breaking is None
        assert stability.time_gap_score == 100.0

    def test_only_dated_breaking_transitions_are_measured(self):
        history = [
            _changelog(0, _breaking(0)),
            _changelog(1, _breaking(1)).model_copy(update={"dated": False}),
            _changelog(20, _breaking(2)),
        ]
        assert StabilityScorer().calculate(history).average_days_between_breaking == pytest.approx(20.0)


class TestDeprecationManagement:
    def _deprecated(self) -> Change:
        return Change(
            type=ChangeType.DEPRECATED, category=ChangeCategory.ENDPOINT, path="endpoint:/old[GET]", endpoint="GET /old"
        )

    def _removed(self, old_value=None) -> Change:
        return Change(
            type=ChangeType.REMOVED,
            category=ChangeCategory.ENDPOINT,
            path="endpoint:/old[GET]",
            endpoint="GET /old",
            old_value=old_value,
        )

    def test_removal_after_notice_window(self):
        history = [_changelog(0, self._deprecated()), _changelog(40, self._removed())]
        assert StabilityScorer().calculate(history).deprecation_score == 100.0

    def test_removal_too_soon(self):
        history = [_changelog(0, self._deprecated()), _changelog(10, self._removed())]
        assert StabilityScorer().calculate(history).deprecation_score == 0.0

    def test_removal_without_deprecation(self):
        assert StabilityScorer().calculate([_changelog(0, self._removed())]).deprecation_score == 0.0

    def test_deprecated_before_history_with_date(self):
        removed = self._removed({"path": "/old", "method": "GET", "deprecated": True, "deprecated_since": "2023-11-01"})
        assert StabilityScorer().calculate([_changelog(0, removed)]).deprecation_score == 100.0

    def test_undeprecation_resets_notice(self):
        undeprecated = Change(
            type=ChangeType.MODIFIED,
            category=ChangeCategory.ENDPOINT,
            path="endpoint:/old[GET].deprecated",
            endpoint="GET /old",
            old_value=True,
            new_value=False,
        )
        history = [
            _changelog(0, self._deprecated()),
            _changelog(35, undeprecated),
            _changelog(40, self._removed()),
        ]
        assert StabilityScorer().calculate(history).deprecation_score == 0.0


class TestSemverCompliance:
    def test_under_bumped_breaking_release(self):
        history = [_changelog(0, _breaking(), from_version="1.0.0", to_version="1.1.0")]
        assert StabilityScorer().calculate(history).semver_score == 0.0

    def test_major_bump_for_breaking_release(self):
        history = [_changelog(0, _breaking(), from_version="1.4.2", to_version="2.0.0")]
        assert StabilityScorer().calculate(history).semver_score == 100.0

    def test_zero_major_minor_bump_counts_as_major(self):
        history = [_changelog(0, _breaking(), from_version="0.3.0", to_version="0.4.0")]
        assert StabilityScorer().calculate(history).semver_score == 100.0

    def test_unparseable_versions_are_skipped(self):
        history = [
            _changelog(0, _breaking(), from_version="alpha", to_version="beta"),
            _changelog(1, _info(), from_version="1.0.0", to_version="1.1.0"),
        ]
        assert StabilityScorer().calculate(history).semver_score == 100.0


class TestVersionHelpers:
    def test_parse_version(self):
        assert parse_version("v1.2.3") == (1, 2, 3)
        assert parse_version("1.2") == (1, 2, 0)
        assert parse_version("2") == (2, 0, 0)
        assert parse_version("1.2.3-rc.1") == (1, 2, 3)
        assert parse_version("latest") is None
        assert parse_version(None) is None

    def test_actual_bump(self):
        assert actual_bump((1, 0, 0), (2, 0, 0)) == SemverBump.MAJOR
        assert actual_bump((1, 0, 0), (1, 1, 0)) == SemverBump.MINOR
        assert actual_bump((1, 0, 0), (1, 0, 1)) == SemverBump.PATCH

    def test_bump_satisfies(self):
        assert bump_satisfies((1, 0, 0), SemverBump.MAJOR, SemverBump.MINOR)
        assert not bump_satisfies((1, 0, 0), SemverBump.PATCH, SemverBump.MINOR)
        assert bump_satisfies((0, 1, 0), SemverBump.MINOR, SemverBump.MAJOR)

    def test_round_half_up(self):
        assert round_half_up(73.5) == 74
        assert round_half_up(72.5) == 73
        assert round_half_up(72.4) == 72
