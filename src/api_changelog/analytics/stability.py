"""Stability scoring over a changelog history.

score = round(w1*B + w2*T + w3*D + w4*S) with, each on 0-100:

    B  breaking-change ratio   100 * (1 - breaking / total changes)
    T  time between breaking   linear up to the ideal gap, clamped there
    D  deprecation management  share of endpoint removals preceded by a
                               deprecation at least the notice window earlier
    S  semver compliance       share of transitions whose version bump is at
                               least the recommended bump

A component with nothing to measure scores 100, so an empty history is a
perfect 100 / A.
"""

import math
import re
from datetime import date, datetime

import structlog

from api_changelog.config.models import AnalyticsConfig
from api_changelog.model.base import Change, ChangeCategory, ChangeType, Changelog, SemverBump
from .history import breaking_count, prepare_history
from .models import StabilityFactor, StabilityGrade, StabilityScore

log = structlog.get_logger()

_VERSION_RE = re.compile(r"^\s*[vV]?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def parse_version(version: str | None) -> tuple[int, int, int] | None:
    """`v1.2.3`, `1.2`, `2` and `1.2.3-rc.1` parse; anything else is None."""
    if not version:
        return None
    match = _VERSION_RE.match(version)
    if match is None:
        return None
    major, minor, patch = (int(part) if part is not None else 0 for part in match.groups())
    return major, minor, patch


def actual_bump(old: tuple[int, int, int], new: tuple[int, int, int]) -> SemverBump:
    if new[0] > old[0]:
        return SemverBump.MAJOR
    if new[0] == old[0] and new[1] > old[1]:
        return SemverBump.MINOR
    return SemverBump.PATCH


def bump_satisfies(old: tuple[int, int, int], actual: SemverBump, required: SemverBump) -> bool:
    # 0.x: anything may break, a minor bump is the major one
    if old[0] == 0 and required == SemverBump.MAJOR and actual == SemverBump.MINOR:
        return True
    return actual.rank >= required.rank


class StabilityScorer:
    def __init__(self, config: AnalyticsConfig | None = None):
        self.config = config or AnalyticsConfig()

    def calculate(self, history: list[Changelog] | None) -> StabilityScore:
        ordered = prepare_history(history)
        if not ordered:
            return StabilityScore(factors=self._factors(100.0, 100.0, 100.0, 100.0))

        total_changes = sum(len(c.changes) for c in ordered)
        total_breaking = sum(breaking_count(c) for c in ordered)
        ratio = total_breaking / total_changes if total_changes else 0.0

        breaking_ratio_score = 100.0 * (1.0 - ratio)
        average_gap = self.average_days_between_breaking(ordered)
        time_gap_score = self.time_gap_score(average_gap)
        deprecation_score = self.deprecation_score(ordered)
        semver_score = self.semver_score(ordered)

        factors = self._factors(breaking_ratio_score, time_gap_score, deprecation_score, semver_score)
        score = max(0, min(100, round_half_up(sum(f.contribution for f in factors))))

        result = StabilityScore(
            score=score,
            grade=StabilityGrade.from_score(score),
            breaking_change_ratio=ratio,
            breaking_ratio_score=breaking_ratio_score,
            time_gap_score=time_gap_score,
            deprecation_score=deprecation_score,
            semver_score=semver_score,
            average_days_between_breaking=average_gap,
            total_changes=total_changes,
            breaking_changes=total_breaking,
            transitions_analyzed=len(ordered),
            factors=factors,
        )
        log.debug("stability.calculated", score=score, grade=result.grade.value, transitions=len(ordered))
        return result

    def _factors(self, b: float, t: float, d: float, s: float) -> list[StabilityFactor]:
        weights = self.config.stability
        return [
            StabilityFactor(name=name, weight=weight, score=value, contribution=weight * value)
            for name, weight, value in (
                ("breaking_change_ratio", weights.breaking_ratio_weight, b),
                ("time_between_breaking_changes", weights.time_gap_weight, t),
                ("deprecation_management", weights.deprecation_weight, d),
                ("semver_compliance", weights.semver_weight, s),
            )
        ]

    def average_days_between_breaking(self, ordered: list[Changelog]) -> float | None:
        """Mean gap in days between consecutive dated breaking transitions, None below two."""
        stamps = [c.generated_at for c in ordered if c.dated and breaking_count(c) > 0]
        if len(stamps) < 2:
            return None
        gaps = [_days_between(a, b) for a, b in zip(stamps, stamps[1:])]
        return sum(gaps) / len(gaps)

    def time_gap_score(self, average_gap: float | None) -> float:
        if average_gap is None:
            return 100.0
        ideal = self.config.stability.ideal_breaking_gap_days
        return 100.0 * min(max(average_gap, 0.0), ideal) / ideal

    def deprecation_score(self, ordered: list[Changelog]) -> float:
        notice_days = self.config.stability.min_deprecation_notice_days
        deprecated_at: dict[str, datetime] = {}
        removals = 0
        proper = 0

        for changelog in ordered:
            for change in changelog.changes:
                if change.category != ChangeCategory.ENDPOINT or change.endpoint is None:
                    continue
                if change.type == ChangeType.DEPRECATED:
                    deprecated_at.setdefault(change.endpoint, changelog.generated_at)
                elif change.type == ChangeType.MODIFIED and change.path.endswith(".deprecated"):
                    deprecated_at.pop(change.endpoint, None)
                elif change.type == ChangeType.REMOVED:
                    removals += 1
                    if _removal_had_notice(change, deprecated_at.get(change.endpoint), changelog.generated_at, notice_days):
                        proper += 1
                    deprecated_at.pop(change.endpoint, None)

        if removals == 0:
            return 100.0
        return 100.0 * proper / removals

    def semver_score(self, ordered: list[Changelog]) -> float:
        evaluated = 0
        compliant = 0
        for changelog in ordered:
            old = parse_version(changelog.from_version)
            new = parse_version(changelog.to_version)
            if old is None or new is None:
                continue
            required = changelog.risk_assessment.semver_recommendation
            evaluated += 1
            if bump_satisfies(old, actual_bump(old, new), required):
                compliant += 1
        if evaluated == 0:
            return 100.0
        return 100.0 * compliant / evaluated


def _days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 86400


def _removal_had_notice(
    change: Change,
    deprecated_at: datetime | None,
    removed_at: datetime,
    notice_days: int,
) -> bool:
    if deprecated_at is not None:
        return _days_between(deprecated_at, removed_at) >= notice_days
    # deprecated before the history starts: trust the declared date
    old = change.old_value if isinstance(change.old_value, dict) else {}
    since = old.get("deprecated_since")
    if old.get("deprecated") and since:
        since_date = date.fromisoformat(str(since))
        return (removed_at.date() - since_date).days >= notice_days
    return False
