"""Rule-based insights, release pattern detection and recommendations.

Recommendations never analyse anything themselves: they are derived only
from metrics, stability and debt values that were already computed.
"""

from collections import Counter
from dataclasses import dataclass

import structlog

from api_changelog.config.models import AnalyticsConfig
from api_changelog.model.base import ApiSpec, ChangeCategory, ChangeType, Changelog
from .history import breaking_count, prepare_history
from .models import (
    ApiMetrics,
    Insight,
    InsightType,
    Pattern,
    PatternType,
    Recommendation,
    RecommendationType,
    StabilityGrade,
    StabilityScore,
    TechnicalDebt,
)
from .stability import StabilityScorer
from .trend import RiskCalculator
from .velocity import VelocityCalculator

log = structlog.get_logger()


@dataclass
class _EndpointActivity:
    version: str | None
    surface: int  # endpoints before the transition
    added: int
    removed: int
    deprecated: int


class PatternDetector:
    def detect_patterns(self, history: list[Changelog] | None) -> list[Pattern]:
        ordered = prepare_history(history)
        if len(ordered) < 3:
            return []
        detectors = (
            self.detect_frequent_breaking_changes,
            self.detect_seasonal_pattern,
            self.detect_weekly_pattern,
            self.detect_burst_releases,
        )
        return [p for p in (detect(ordered) for detect in detectors) if p is not None]

    def detect_frequent_breaking_changes(self, ordered: list[Changelog]) -> Pattern | None:
        if not ordered:
            return None
        with_breaking = sum(1 for c in ordered if breaking_count(c) > 0)
        ratio = with_breaking / len(ordered)
        if ratio <= 0.5:
            return None
        return Pattern(
            type=PatternType.FREQUENT_BREAKING_CHANGES,
            description=f"{ratio * 100:.0f}% of releases contain breaking changes",
            confidence=ratio,
            details={"release_count": len(ordered), "with_breaking_count": with_breaking},
        )

    def detect_seasonal_pattern(self, ordered: list[Changelog]) -> Pattern | None:
        dated = [c for c in ordered if c.dated]
        if len(dated) < 6:
            return None
        months = Counter(c.generated_at.strftime("%B") for c in dated)
        peak, count = months.most_common(1)[0]
        if count > (len(dated) // 12) * 2 and count >= 3:
            return Pattern(
                type=PatternType.SEASONAL_RELEASES,
                description=f"Peak releases in {peak}",
                confidence=0.7,
                details={"peak_month": peak, "peak_count": count},
            )
        return None

    def detect_weekly_pattern(self, ordered: list[Changelog]) -> Pattern | None:
        dated = [c for c in ordered if c.dated]
        if len(dated) < 5:
            return None
        days = Counter(c.generated_at.strftime("%A") for c in dated)
        peak, count = days.most_common(1)[0]
        if count > (len(dated) // 7) * 2 and count >= 3:
            return Pattern(
                type=PatternType.WEEKLY_PATTERN,
                description=f"Releases typically occur on {peak}",
                confidence=0.75,
                details={"peak_day": peak, "count": count},
            )
        return None

    def detect_burst_releases(self, ordered: list[Changelog]) -> Pattern | None:
        dated = [c for c in ordered if c.dated]
        if len(dated) < 4:
            return None
        bursts = sum(
            1 for prev, cur in zip(dated, dated[1:]) if (cur.generated_at - prev.generated_at).total_seconds() < 86400
        )
        ratio = bursts / (len(dated) - 1)
        if ratio > 0.3 and bursts >= 2:
            return Pattern(
                type=PatternType.BURST_RELEASES,
                description=f"{ratio * 100:.0f}% of releases occur within 24 hours of each other",
                confidence=ratio,
                details={"burst_count": bursts},
            )
        return None


class InsightGenerator:
    def __init__(self, config: AnalyticsConfig | None = None):
        self.config = config or AnalyticsConfig()
        self.stability_scorer = StabilityScorer(self.config)
        self.risk_calculator = RiskCalculator(self.config)
        self.velocity_calculator = VelocityCalculator(self.config)
        self.pattern_detector = PatternDetector()

    def generate(self, spec: ApiSpec | None, history: list[Changelog] | None) -> list[Insight]:
        """Insights for the current `spec` and its history, highest priority first."""
        ordered = prepare_history(history)
        insights: list[Insight] = []

        if ordered:
            insights.extend(self._breaking_change_insights(ordered))
            insights.extend(self._stability_insights(ordered))
            insights.extend(self._velocity_insights(ordered))
            insights.extend(self._risk_insights(ordered))
            insights.extend(self._pattern_insights(ordered))
            if spec is not None:
                insights.extend(self._significant_change_insights(spec, ordered))

        if spec is not None:
            insights.extend(self._spec_insights(spec))

        # stable sort keeps rule order among equal priorities
        insights.sort(key=lambda i: i.priority, reverse=True)
        limited = insights[: self.config.insights.max_insights]
        log.debug("insights.generated", total=len(insights), kept=len(limited))
        return limited

    def _breaking_change_insights(self, ordered: list[Changelog]) -> list[Insight]:
        total = sum(breaking_count(c) for c in ordered)
        if total == 0:
            return [
                Insight(
                    type=InsightType.POSITIVE_TREND,
                    title="No Breaking Changes",
                    description="No breaking changes detected in the analyzed period",
                    priority=3,
                    confidence=1.0,
                )
            ]
        mid = len(ordered) // 2
        older = sum(breaking_count(c) for c in ordered[:mid])
        recent = sum(breaking_count(c) for c in ordered[mid:])
        if recent > older * 1.5:
            return [
                Insight(
                    type=InsightType.BREAKING_CHANGE_TREND,
                    title="Breaking Changes Increasing",
                    description=f"Breaking changes increased from {older} to {recent} in recent period",
                    priority=8,
                    confidence=0.8,
                )
            ]
        return []

    def _stability_insights(self, ordered: list[Changelog]) -> list[Insight]:
        stability = self.stability_scorer.calculate(ordered)
        if stability.is_poor:
            return [
                Insight(
                    type=InsightType.STABILITY_ALERT,
                    title="Poor API Stability",
                    description=(
                        f"Stability score is {stability.score} ({stability.grade.value}). "
                        "Consider reducing breaking changes."
                    ),
                    priority=9,
                    confidence=0.9,
                )
            ]
        if stability.is_acceptable and stability.score < 80:
            return [
                Insight(
                    type=InsightType.STABILITY_ALERT,
                    title="Moderate Stability Concerns",
                    description=f"Stability score is {stability.score}. Room for improvement.",
                    priority=5,
                    confidence=0.85,
                )
            ]
        return []

    def _velocity_insights(self, ordered: list[Changelog]) -> list[Insight]:
        velocity = self.velocity_calculator.calculate(ordered)
        cfg = self.config.insights
        insights = []
        if velocity.accelerating and velocity.acceleration_rate > cfg.rapid_acceleration_rate:
            insights.append(
                Insight(
                    type=InsightType.VELOCITY_CHANGE,
                    title="Rapid Change Velocity",
                    description=(
                        f"Change velocity increased by {velocity.acceleration_rate * 100:.0f}%. "
                        "Consider slowing down."
                    ),
                    priority=6,
                    confidence=0.75,
                )
            )
        if velocity.breaking_changes_per_release > cfg.high_breaking_per_release:
            insights.append(
                Insight(
                    type=InsightType.BREAKING_CHANGE_TREND,
                    title="High Breaking Changes Per Release",
                    description=(
                        f"Average {velocity.breaking_changes_per_release:.1f} breaking changes per release. "
                        "Consider batching changes."
                    ),
                    priority=7,
                    confidence=0.85,
                )
            )
        return insights

    def _risk_insights(self, ordered: list[Changelog]) -> list[Insight]:
        trend = self.risk_calculator.analyze_trend(ordered)
        if trend.is_degrading:
            return [
                Insight(
                    type=InsightType.RISK_INCREASE,
                    title="Increasing Risk Trend",
                    description=f"Risk score increased by {abs(trend.change_percentage):.1f}% recently",
                    priority=8,
                    confidence=0.8,
                )
            ]
        if trend.is_improving:
            return [
                Insight(
                    type=InsightType.RISK_DECREASE,
                    title="Decreasing Risk Trend",
                    description=f"Risk score decreased by {abs(trend.change_percentage):.1f}% - good progress!",
                    priority=4,
                    confidence=0.8,
                )
            ]
        return []

    def _pattern_insights(self, ordered: list[Changelog]) -> list[Insight]:
        return [
            Insight(
                type=InsightType.PATTERN_DETECTED,
                title=pattern.type.value.replace("_", " ").title(),
                description=pattern.description,
                priority=6 if pattern.type == PatternType.FREQUENT_BREAKING_CHANGES else 4,
                confidence=min(1.0, pattern.confidence),
            )
            for pattern in self.pattern_detector.detect_patterns(ordered)
        ]

    def _significant_change_insights(self, spec: ApiSpec, ordered: list[Changelog]) -> list[Insight]:
        """Deprecation waves and endpoint churn touching a large share of the surface."""
        threshold = self.config.insights.significant_change_threshold
        insights = []
        for activity in _endpoint_activity(spec, ordered):
            if activity.surface <= 0:
                continue
            label = activity.version or "unversioned release"
            deprecated_share = activity.deprecated / activity.surface
            if deprecated_share >= threshold:
                insights.append(
                    Insight(
                        type=InsightType.SIGNIFICANT_CHANGE,
                        title="Significant Deprecation Wave",
                        description=(
                            f"{activity.deprecated} of {activity.surface} endpoints "
                            f"({deprecated_share * 100:.0f}%) deprecated in {label}"
                        ),
                        priority=7,
                        confidence=1.0,
                    )
                )
            churn_share = (activity.added + activity.removed) / activity.surface
            if churn_share >= threshold:
                insights.append(
                    Insight(
                        type=InsightType.SIGNIFICANT_CHANGE,
                        title="Significant Endpoint Churn",
                        description=(
                            f"{activity.added} added and {activity.removed} removed endpoints "
                            f"({churn_share * 100:.0f}% of {activity.surface}) in {label}"
                        ),
                        priority=6,
                        confidence=1.0,
                    )
                )
        return insights

    def _spec_insights(self, spec: ApiSpec) -> list[Insight]:
        deprecated = sum(1 for e in spec.endpoints if e.deprecated)
        if deprecated == 0:
            return []
        return [
            Insight(
                type=InsightType.DEPRECATION_REMINDER,
                title="Deprecated Endpoints Present",
                description=f"{deprecated} deprecated endpoint(s) should be reviewed for removal",
                priority=6,
                confidence=1.0,
            )
        ]


def _endpoint_activity(spec: ApiSpec, ordered: list[Changelog]) -> list[_EndpointActivity]:
    """Endpoint counts per transition, reconstructed backwards from the current spec."""
    activities = []
    after = len(spec.endpoints)
    for changelog in reversed(ordered):
        endpoint_changes = [c for c in changelog.changes if c.category == ChangeCategory.ENDPOINT]
        added = sum(1 for c in endpoint_changes if c.type == ChangeType.ADDED)
        removed = sum(1 for c in endpoint_changes if c.type == ChangeType.REMOVED)
        deprecated = sum(1 for c in endpoint_changes if c.type == ChangeType.DEPRECATED)
        before = after - added + removed
        activities.append(_EndpointActivity(changelog.to_version, before, added, removed, deprecated))
        after = before
    activities.reverse()
    return activities


class RecommendationEngine:
    def __init__(self, config: AnalyticsConfig | None = None):
        self.config = config or AnalyticsConfig()

    def generate_recommendations(
        self,
        metrics: ApiMetrics | None = None,
        stability: StabilityScore | None = None,
        debt: TechnicalDebt | None = None,
    ) -> list[Recommendation]:
        """Best impact/effort first, at most `max_recommendations`, one per title."""
        recommendations: list[Recommendation] = []
        if stability is not None:
            recommendations.extend(self._stability_recommendations(stability))
        if metrics is not None:
            recommendations.extend(self._metrics_recommendations(metrics))
        if debt is not None:
            recommendations.extend(self.recommend_for_high_debt(debt))

        unique: dict[str, Recommendation] = {}
        for rec in recommendations:
            unique.setdefault(rec.title, rec)
        ranked = sorted(unique.values(), key=lambda r: r.efficiency_score, reverse=True)
        return ranked[: self.config.insights.max_recommendations]

    def recommend_for_poor_stability(self, stability: StabilityScore) -> list[Recommendation]:
        recommendations = []
        if stability.grade == StabilityGrade.F:
            recommendations.append(
                Recommendation(
                    type=RecommendationType.STABILITY_IMPROVEMENT,
                    title="Implement Change Freeze",
                    description="Consider a temporary change freeze to stabilize the API",
                    action="Halt non-critical changes and focus on stability",
                    priority=10,
                    effort=3,
                    impact=9,
                )
            )
            recommendations.append(
                Recommendation(
                    type=RecommendationType.VERSIONING,
                    title="Major Version Planning",
                    description="Plan a major version release to batch breaking changes",
                    action="Create a roadmap for the next major version",
                    priority=9,
                    effort=5,
                    impact=8,
                )
            )
        if stability.grade in (StabilityGrade.D, StabilityGrade.F):
            recommendations.append(
                Recommendation(
                    type=RecommendationType.DEPRECATION,
                    title="Improve Deprecation Policy",
                    description="Announce deprecations before breaking changes",
                    action="Implement a minimum 2-version deprecation period",
                    priority=8,
                    effort=4,
                    impact=7,
                )
            )
        return recommendations

    def recommend_for_high_debt(self, debt: TechnicalDebt) -> list[Recommendation]:
        recommendations = []
        if debt.deprecated_endpoints_count > 0:
            recommendations.append(
                Recommendation(
                    type=RecommendationType.DEBT_REDUCTION,
                    title="Remove Deprecated Endpoints",
                    description=f"Remove {debt.deprecated_endpoints_count} deprecated endpoint(s)",
                    action="Plan removal in next major version",
                    priority=7,
                    effort=4,
                    impact=6,
                )
            )
        if debt.missing_documentation_count > 0:
            recommendations.append(
                Recommendation(
                    type=RecommendationType.DOCUMENTATION,
                    title="Improve Documentation Coverage",
                    description=f"{debt.missing_documentation_count} endpoint(s) lack documentation",
                    action="Add descriptions and examples",
                    priority=5,
                    effort=3,
                    impact=5,
                )
            )
        if debt.inconsistent_naming_count > 0:
            recommendations.append(
                Recommendation(
                    type=RecommendationType.COMPLIANCE,
                    title="Fix Naming Inconsistencies",
                    description=f"{debt.inconsistent_naming_count} naming inconsistencies detected",
                    action="Standardize naming conventions",
                    priority=4,
                    effort=5,
                    impact=4,
                )
            )
        return recommendations

    def _stability_recommendations(self, stability: StabilityScore) -> list[Recommendation]:
        recommendations = []
        if stability.is_poor:
            recommendations.extend(self.recommend_for_poor_stability(stability))
        if stability.breaking_change_ratio > 0.3:
            recommendations.append(
                Recommendation(
                    type=RecommendationType.STABILITY_IMPROVEMENT,
                    title="Reduce Breaking Change Ratio",
                    description=f"{stability.breaking_change_ratio * 100:.0f}% of changes are breaking",
                    action="Review changes for backwards compatibility before release",
                    priority=8,
                    effort=2,
                    impact=7,
                )
            )
        return recommendations

    def _metrics_recommendations(self, metrics: ApiMetrics) -> list[Recommendation]:
        cfg = self.config.insights
        recommendations = []
        if metrics.complexity_score > cfg.complex_api_score:
            recommendations.append(
                Recommendation(
                    type=RecommendationType.PERFORMANCE,
                    title="Reduce API Complexity",
                    description=f"Complexity score is {metrics.complexity_score} (high)",
                    action="Consider splitting into smaller, focused APIs",
                    priority=6,
                    effort=8,
                    impact=7,
                )
            )
        if metrics.total_endpoints > 0 and metrics.documentation_coverage < cfg.min_documentation_coverage:
            recommendations.append(
                Recommendation(
                    type=RecommendationType.DOCUMENTATION,
                    title="Increase Documentation Coverage",
                    description=f"Only {metrics.documentation_coverage * 100:.0f}% documentation coverage",
                    action="Add descriptions to undocumented endpoints",
                    priority=5,
                    effort=3,
                    impact=5,
                )
            )
        return recommendations
