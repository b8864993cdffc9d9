"""AnalyticsService: one entry point over every analytics computation."""

from datetime import date, datetime, timezone

import structlog

from api_changelog.config.models import AnalyticsConfig
from api_changelog.generator.changelog import ChangelogGenerator
from api_changelog.model.base import ApiSpec, Changelog
from .aggregator import ComparisonAggregator, HistoryAggregator, MetricsAggregator
from .insight import InsightGenerator, PatternDetector, RecommendationEngine
from .metrics import ComplexityAnalyzer, MetricsCalculator
from .models import (
    ApiEvolution,
    ApiMetrics,
    ChangeVelocity,
    Insight,
    Pattern,
    Recommendation,
    RiskTrend,
    StabilityScore,
    TechnicalDebt,
)
from .reports import (
    ApiEvolutionReport,
    ComplianceReport,
    ReportGenerator,
    RiskTrendReport,
    StabilityReport,
    TechnicalDebtReport,
)
from .stability import StabilityScorer
from .trend import RiskCalculator
from .velocity import VelocityCalculator

log = structlog.get_logger()


class AnalyticsService:
    """Stateless facade; every call is a pure function of its arguments and the config."""

    def __init__(self, config: AnalyticsConfig | None = None):
        self.config = config or AnalyticsConfig()
        self.changelog_generator = ChangelogGenerator()
        self.stability_scorer = StabilityScorer(self.config)
        self.risk_calculator = RiskCalculator(self.config)
        self.velocity_calculator = VelocityCalculator(self.config)
        self.metrics_calculator = MetricsCalculator(self.config)
        self.complexity_analyzer = ComplexityAnalyzer(self.config)
        self.history_aggregator = HistoryAggregator()
        self.metrics_aggregator = MetricsAggregator()
        self.comparison_aggregator = ComparisonAggregator(self.config)
        self.insight_generator = InsightGenerator(self.config)
        self.pattern_detector = PatternDetector()
        self.recommendation_engine = RecommendationEngine(self.config)
        self.report_generator = ReportGenerator(self.config)

    # history

    def calculate_stability(self, history: list[Changelog] | None) -> StabilityScore:
        return self.stability_scorer.calculate(history)

    def analyze_risk_trend(self, history: list[Changelog] | None, strict: bool = False) -> RiskTrend:
        return self.risk_calculator.analyze_trend(history, strict=strict)

    def calculate_velocity(self, history: list[Changelog] | None) -> ChangeVelocity:
        return self.velocity_calculator.calculate(history)

    def analyze_evolution(self, history: list[Changelog] | None, baseline_endpoints: int | None = None) -> ApiEvolution:
        return self.history_aggregator.aggregate(history, baseline_endpoints=baseline_endpoints)

    def detect_patterns(self, history: list[Changelog] | None) -> list[Pattern]:
        return self.pattern_detector.detect_patterns(history)

    def change_metrics(self, history: list[Changelog] | None, period_days: int | None = None):
        """Change counts for the whole history, or per fixed period when `period_days` is given."""
        if period_days is None:
            return self.metrics_aggregator.aggregate(history)
        return self.metrics_aggregator.aggregate_by_period(history, period_days)

    def compare_apis(self, histories: dict[str, list[Changelog]]) -> dict[str, StabilityScore]:
        """Stability of several APIs, most stable first."""
        scores = self.comparison_aggregator.compare_stability(histories)
        ranked = self.comparison_aggregator.rank_by_stability(histories)
        return {name: scores[name] for name in ranked}

    def build_history(self, specs: list[ApiSpec], generated_at: list[datetime] | None = None) -> list[Changelog]:
        """Assembled changelogs for each consecutive pair of snapshots, oldest first.

        Each transition is dated by `generated_at[i]` when given, else by the
        newer snapshot's `parsed_at`. A transition with neither borrows the
        nearest known timestamp (earlier first, then later) so the history
        keeps the snapshot order; it is marked `dated=False` and gives no
        timing evidence to the analytics.
        """
        pairs = list(zip(specs, specs[1:]))
        stamps: list[datetime | None] = [
            generated_at[i] if generated_at is not None else new.parsed_at for i, (_, new) in enumerate(pairs)
        ]
        history = []
        for i, (old, new) in enumerate(pairs):
            stamp = stamps[i]
            if stamp is not None:
                history.append(self.changelog_generator.generate(old, new, generated_at=stamp))
                continue
            borrowed = _nearest_stamp(specs, stamps, i)
            changelog = self.changelog_generator.generate(old, new, generated_at=borrowed)
            history.append(changelog.model_copy(update={"dated": False}))
        return history

    def analyze_spec_evolution(self, specs: list[ApiSpec]) -> ApiEvolution:
        """Evolution over ordered snapshots, with exact per-version endpoint counts."""
        if not specs:
            return ApiEvolution()
        history = self.build_history(specs)
        evolution = self.history_aggregator.aggregate(history, baseline_endpoints=len(specs[0].endpoints))
        if not history:
            return evolution
        # pair counts with their transitions, then order them the way the aggregator does
        counted = sorted(
            zip(history, (len(spec.endpoints) for spec in specs[1:])),
            key=lambda pair: pair[0].generated_at,
        )
        exact = [
            summary.model_copy(update={"endpoint_count": count})
            for summary, (_, count) in zip(evolution.versions, counted)
        ]
        log.debug("evolution.snapshots", api=evolution.api_name, snapshots=len(specs))
        return evolution.model_copy(
            update={
                "versions": exact,
                "endpoint_growth": len(specs[-1].endpoints) - len(specs[0].endpoints),
            }
        )

    # single spec

    def calculate_metrics(self, spec: ApiSpec | None) -> ApiMetrics:
        return self.metrics_calculator.calculate(spec)

    def aggregate_metrics(self, specs: list[ApiSpec | None] | None) -> ApiMetrics:
        return self.metrics_calculator.aggregate(specs)

    def compare_specs(self, old_spec: ApiSpec | None, new_spec: ApiSpec | None) -> ApiMetrics:
        """Metrics difference (new - old) between two snapshots."""
        return self.metrics_calculator.compare(old_spec, new_spec)

    def analyze_technical_debt(self, spec: ApiSpec | None, as_of: date | None = None) -> TechnicalDebt:
        return self.complexity_analyzer.analyze_technical_debt(spec, as_of=as_of)

    # insights

    def generate_insights(self, spec: ApiSpec | None, history: list[Changelog] | None) -> list[Insight]:
        return self.insight_generator.generate(spec, history)

    def generate_recommendations(
        self,
        metrics: ApiMetrics | None = None,
        stability: StabilityScore | None = None,
        debt: TechnicalDebt | None = None,
    ) -> list[Recommendation]:
        return self.recommendation_engine.generate_recommendations(metrics, stability, debt)

    # reports

    def generate_evolution_report(
        self,
        history: list[Changelog] | None,
        spec: ApiSpec | None = None,
        api_name: str | None = None,
    ) -> ApiEvolutionReport:
        return self.report_generator.evolution_report(history, spec=spec, api_name=api_name)

    def generate_spec_evolution_report(self, specs: list[ApiSpec], api_name: str | None = None) -> ApiEvolutionReport:
        """Evolution report straight from ordered snapshots (the newest is the current spec)."""
        history = self.build_history(specs)
        return self.report_generator.evolution_report(
            history,
            spec=specs[-1] if specs else None,
            api_name=api_name,
            evolution=self.analyze_spec_evolution(specs),
        )

    def generate_stability_report(self, history: list[Changelog] | None, api_name: str | None = None) -> StabilityReport:
        return self.report_generator.stability_report(history, api_name=api_name)

    def generate_risk_trend_report(self, history: list[Changelog] | None, api_name: str | None = None) -> RiskTrendReport:
        return self.report_generator.risk_trend_report(history, api_name=api_name)

    def generate_technical_debt_report(
        self,
        spec: ApiSpec | None,
        as_of: date | None = None,
        api_name: str | None = None,
    ) -> TechnicalDebtReport:
        return self.report_generator.technical_debt_report(spec, as_of=as_of, api_name=api_name)

    def generate_compliance_report(
        self,
        spec: ApiSpec | None,
        history: list[Changelog] | None = None,
        api_name: str | None = None,
    ) -> ComplianceReport:
        return self.report_generator.compliance_report(spec, history=history, api_name=api_name)


def _nearest_stamp(specs: list[ApiSpec], stamps: list[datetime | None], index: int) -> datetime:
    """Closest timestamp to transition `index`: earlier transitions, its old snapshot, then later ones."""
    for stamp in reversed(stamps[:index]):
        if stamp is not None:
            return stamp
    if specs[index].parsed_at is not None:
        return specs[index].parsed_at
    for stamp in stamps[index + 1 :]:
        if stamp is not None:
            return stamp
    return datetime.now(timezone.utc)
