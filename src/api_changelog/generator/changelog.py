"""Changelog assembler: compare -> classify -> detect -> assess risk.

The risk formula is fixed (not configurable) so scores stay comparable
across runs and installations.
"""

from collections import Counter
from datetime import datetime

import structlog

from api_changelog.comparator.api import ApiComparator
from api_changelog.detector.breaking import BreakingChangeDetector
from api_changelog.detector.severity import SeverityClassifier
from api_changelog.model.base import (
    ApiSpec,
    Changelog,
    RiskAssessment,
    RiskLevel,
    SemverBump,
    Severity,
)

log = structlog.get_logger()

BREAKING_WEIGHT = 30
DANGEROUS_WEIGHT = 15
WARNING_WEIGHT = 5
MAX_RISK_SCORE = 100

# (minimum score, level), highest first
RISK_LEVEL_THRESHOLDS = (
    (76, RiskLevel.CRITICAL),
    (51, RiskLevel.HIGH),
    (26, RiskLevel.MEDIUM),
)


def risk_score(breaking: int, dangerous: int, warning: int) -> int:
    return min(
        MAX_RISK_SCORE,
        BREAKING_WEIGHT * breaking + DANGEROUS_WEIGHT * dangerous + WARNING_WEIGHT * warning,
    )


def risk_level(score: float) -> RiskLevel:
    for minimum, level in RISK_LEVEL_THRESHOLDS:
        if score >= minimum:
            return level
    return RiskLevel.LOW


def semver_bump(counts: dict[Severity, int]) -> SemverBump:
    if counts.get(Severity.BREAKING, 0) > 0:
        return SemverBump.MAJOR
    if any(counts.get(s, 0) > 0 for s in (Severity.INFO, Severity.WARNING, Severity.DANGEROUS)):
        return SemverBump.MINOR
    return SemverBump.PATCH


def recommendation(level: RiskLevel, breaking: int, total: int) -> str:
    if level == RiskLevel.CRITICAL:
        return (
            "Critical changes detected. Major version bump required. "
            "Extensive testing and migration planning recommended. "
            f"{breaking} breaking change(s) out of {total} total change(s)."
        )
    if level == RiskLevel.HIGH:
        return (
            "Significant changes detected. Careful review required before deployment. "
            f"Consider a major version bump. {breaking} breaking change(s) detected."
        )
    if level == RiskLevel.MEDIUM:
        return "Moderate changes detected. Review recommended before deployment. Minor version bump suggested."
    return "Minor changes detected. Safe to deploy with standard testing. Patch version bump suggested."


class ChangelogGenerator:
    """Build a fully classified changelog with breaking changes and risk attached."""

    def __init__(
        self,
        comparator: ApiComparator | None = None,
        classifier: SeverityClassifier | None = None,
        detector: BreakingChangeDetector | None = None,
    ):
        self.comparator = comparator or ApiComparator()
        self.classifier = classifier or SeverityClassifier()
        self.detector = detector or BreakingChangeDetector(self.classifier)

    def compare(
        self,
        old_spec: ApiSpec | None,
        new_spec: ApiSpec | None,
        generated_at: datetime | None = None,
    ) -> Changelog:
        """Compare and classify, without breaking-change detection or risk."""
        changelog = self.comparator.compare(old_spec, new_spec, generated_at=generated_at)
        return changelog.model_copy(update={"changes": self.classifier.classify_all(changelog.changes)})

    def generate(
        self,
        old_spec: ApiSpec | None,
        new_spec: ApiSpec | None,
        generated_at: datetime | None = None,
    ) -> Changelog:
        changelog = self.compare(old_spec, new_spec, generated_at=generated_at)
        changelog = self.assemble(changelog)
        log.debug(
            "changelog.generated",
            api=changelog.api_name,
            changes=len(changelog.changes),
            breaking=len(changelog.breaking_changes),
            risk=changelog.risk_assessment.level.value,
        )
        return changelog

    def assemble(self, changelog: Changelog) -> Changelog:
        """Attach breaking changes and risk to a changelog that has neither yet."""
        changes = self.classifier.classify_all(changelog.changes)
        partial = changelog.model_copy(update={"changes": changes, "breaking_changes": self.detector.detect(changes)})
        return partial.model_copy(update={"risk_assessment": self.assess_risk(partial)})

    def assess_risk(self, changelog: Changelog | None) -> RiskAssessment:
        if changelog is None:
            return RiskAssessment(recommendation="No changes detected.")

        counts = Counter(change.severity for change in self.classifier.classify_all(changelog.changes))
        by_severity = {severity: counts.get(severity, 0) for severity in Severity}

        breaking = by_severity[Severity.BREAKING]
        total = len(changelog.changes)
        score = risk_score(breaking, by_severity[Severity.DANGEROUS], by_severity[Severity.WARNING])
        level = risk_level(score)

        return RiskAssessment(
            overall_score=score,
            level=level,
            breaking_changes_count=breaking,
            total_changes_count=total,
            changes_by_severity=by_severity,
            recommendation=recommendation(level, breaking, total),
            semver_recommendation=semver_bump(by_severity),
        )


_default_generator = ChangelogGenerator()


def compare_specs(old_spec: ApiSpec | None, new_spec: ApiSpec | None, generated_at: datetime | None = None) -> Changelog:
    """Single-transition diff with classified changes and no risk assessment."""
    return _default_generator.compare(old_spec, new_spec, generated_at=generated_at)


def analyze(old_spec: ApiSpec | None, new_spec: ApiSpec | None, generated_at: datetime | None = None) -> Changelog:
    """Single-transition diff with breaking changes and risk assessment attached."""
    return _default_generator.generate(old_spec, new_spec, generated_at=generated_at)
