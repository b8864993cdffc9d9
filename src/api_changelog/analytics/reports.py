"""Report assembly: bundle computed analytics with identifying metadata.

Reports are read-only aggregations. Any failure while assembling one is
raised as REPORT_GENERATION_ERROR with the original exception chained;
analytics errors raised by the calculators themselves pass through as-is.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, timezone
from enum import Enum

import structlog
from pydantic import BaseModel, ConfigDict

from api_changelog.config.models import AnalyticsConfig
from api_changelog.core.errors import AnalyticsError
from api_changelog.model.base import ApiSpec, Changelog, RiskLevel
from .aggregator import HistoryAggregator
from .history import breaking_count, prepare_history
from .insight import InsightGenerator, RecommendationEngine
from .metrics import ComplexityAnalyzer, MetricsCalculator
from .models import (
    ApiEvolution,
    ApiMetrics,
    ChangeVelocity,
    Insight,
    Recommendation,
    RiskTrend,
    StabilityScore,
    TechnicalDebt,
)
from .stability import StabilityScorer, actual_bump, bump_satisfies, parse_version, round_half_up
from .trend import RiskCalculator
from .velocity import VelocityCalculator

log = structlog.get_logger()


class Report(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_name: str = ""
    versions_analyzed: int = 0
    generated_at: datetime


class ApiEvolutionReport(Report):
    evolution: ApiEvolution
    velocity: ChangeVelocity
    metrics: ApiMetrics | None = None
    insights: list[Insight] = []
    recommendations: list[Recommendation] = []


class StabilityReport(Report):
    stability: StabilityScore
    velocity: ChangeVelocity
    insights: list[Insight] = []
    recommendations: list[Recommendation] = []


class RiskTrendReport(Report):
    risk_trend: RiskTrend
    highest_score: int = 0
    average_score: float = 0.0
    insights: list[Insight] = []


class TechnicalDebtReport(Report):
    debt: TechnicalDebt
    metrics: ApiMetrics
    complexity_level: str = ""
    recommendations: list[Recommendation] = []


class CheckStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    WARNING = "WARNING"
    SKIPPED = "SKIPPED"


class ComplianceStatus(str, Enum):
    COMPLIANT = "COMPLIANT"
    PARTIAL = "PARTIAL"
    NON_COMPLIANT = "NON_COMPLIANT"


class ComplianceLevel(str, Enum):
    FULLY_COMPLIANT = "FULLY_COMPLIANT"
    MOSTLY_COMPLIANT = "MOSTLY_COMPLIANT"
    PARTIALLY_COMPLIANT = "PARTIALLY_COMPLIANT"
    NON_COMPLIANT = "NON_COMPLIANT"

    @classmethod
    def from_score(cls, score: int) -> "ComplianceLevel":
        if score >= 90:
            return cls.FULLY_COMPLIANT
        if score >= 70:
            return cls.MOSTLY_COMPLIANT
        if score >= 50:
            return cls.PARTIALLY_COMPLIANT
        return cls.NON_COMPLIANT


class ComplianceCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    category: str
    status: CheckStatus
    message: str


class ComplianceViolation(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule: str
    severity: RiskLevel
    location: str
    description: str


class ComplianceReport(Report):
    status: ComplianceStatus
    level: ComplianceLevel
    score: int
    checks: list[ComplianceCheck] = []
    violations: list[ComplianceViolation] = []
    recommendations: list[Recommendation] = []
    passed_checks: int = 0
    failed_checks: int = 0
    warning_checks: int = 0


@contextmanager
def _assembling(report: str, api_name: str) -> Iterator[None]:
    try:
        yield
    except AnalyticsError:
        raise
    except Exception as e:
        log.error("report.failed", report=report, api=api_name, error=str(e))
        raise AnalyticsError.report_generation_error(report, e, api=api_name) from e


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _name(api_name: str | None, spec: ApiSpec | None, ordered: list[Changelog]) -> str:
    if api_name:
        return api_name
    if spec is not None and spec.name:
        return spec.name
    return ordered[-1].api_name if ordered else ""


class ReportGenerator:
    def __init__(self, config: AnalyticsConfig | None = None):
        self.config = config or AnalyticsConfig()
        self.stability_scorer = StabilityScorer(self.config)
        self.risk_calculator = RiskCalculator(self.config)
        self.velocity_calculator = VelocityCalculator(self.config)
        self.metrics_calculator = MetricsCalculator(self.config)
        self.complexity_analyzer = ComplexityAnalyzer(self.config)
        self.history_aggregator = HistoryAggregator()
        self.insight_generator = InsightGenerator(self.config)
        self.recommendation_engine = RecommendationEngine(self.config)

    def evolution_report(
        self,
        history: list[Changelog] | None,
        spec: ApiSpec | None = None,
        api_name: str | None = None,
        evolution: ApiEvolution | None = None,
    ) -> ApiEvolutionReport:
        """Evolution of an API; `spec` is its latest snapshot when known."""
        ordered = prepare_history(history)
        name = _name(api_name, spec, ordered)
        with _assembling("evolution report", name):
            metrics = self.metrics_calculator.calculate(spec) if spec is not None else None
            stability = self.stability_scorer.calculate(ordered)
            report = ApiEvolutionReport(
                api_name=name,
                versions_analyzed=len(ordered),
                generated_at=_now(),
                evolution=evolution or self.history_aggregator.aggregate(ordered),
                velocity=self.velocity_calculator.calculate(ordered),
                metrics=metrics,
                insights=self.insight_generator.generate(spec, ordered),
                recommendations=self.recommendation_engine.generate_recommendations(metrics, stability),
            )
        log.info("report.generated", report="evolution", api=name, versions=len(ordered))
        return report

    def stability_report(self, history: list[Changelog] | None, api_name: str | None = None) -> StabilityReport:
        ordered = prepare_history(history)
        name = _name(api_name, None, ordered)
        with _assembling("stability report", name):
            stability = self.stability_scorer.calculate(ordered)
            report = StabilityReport(
                api_name=name,
                versions_analyzed=len(ordered),
                generated_at=_now(),
                stability=stability,
                velocity=self.velocity_calculator.calculate(ordered),
                insights=self.insight_generator.generate(None, ordered),
                recommendations=self.recommendation_engine.generate_recommendations(stability=stability),
            )
        log.info("report.generated", report="stability", api=name, score=stability.score)
        return report

    def risk_trend_report(self, history: list[Changelog] | None, api_name: str | None = None) -> RiskTrendReport:
        ordered = prepare_history(history)
        name = _name(api_name, None, ordered)
        with _assembling("risk trend report", name):
            trend = self.risk_calculator.analyze_trend(ordered)
            scores = [p.score for p in trend.data_points]
            report = RiskTrendReport(
                api_name=name,
                versions_analyzed=len(ordered),
                generated_at=_now(),
                risk_trend=trend,
                highest_score=max(scores, default=0),
                average_score=sum(scores) / len(scores) if scores else 0.0,
                insights=[i for i in self.insight_generator.generate(None, ordered) if i.type.value.startswith("RISK")],
            )
        log.info("report.generated", report="risk_trend", api=name, direction=trend.direction.value)
        return report

    def technical_debt_report(
        self,
        spec: ApiSpec | None,
        as_of: date | None = None,
        api_name: str | None = None,
    ) -> TechnicalDebtReport:
        name = _name(api_name, spec, [])
        with _assembling("technical debt report", name):
            debt = self.complexity_analyzer.analyze_technical_debt(spec, as_of=as_of)
            metrics = self.metrics_calculator.calculate(spec)
            report = TechnicalDebtReport(
                api_name=name,
                versions_analyzed=1 if spec is not None else 0,
                generated_at=_now(),
                debt=debt,
                metrics=metrics,
                complexity_level=self.complexity_analyzer.complexity_level(debt.complexity_score),
                recommendations=self.recommendation_engine.generate_recommendations(metrics=metrics, debt=debt),
            )
        log.info("report.generated", report="technical_debt", api=name, score=debt.debt_score)
        return report

    def compliance_report(
        self,
        spec: ApiSpec | None,
        history: list[Changelog] | None = None,
        api_name: str | None = None,
    ) -> ComplianceReport:
        ordered = prepare_history(history)
        name = _name(api_name, spec, ordered)
        with _assembling("compliance report", name):
            checks, violations = self._run_checks(spec, ordered)
            passed = sum(1 for c in checks if c.status == CheckStatus.PASSED)
            failed = sum(1 for c in checks if c.status == CheckStatus.FAILED)
            warning = sum(1 for c in checks if c.status == CheckStatus.WARNING)
            counted = passed + failed + warning
            score = round_half_up(passed / counted * 100) if counted else 100

            if failed:
                status = ComplianceStatus.NON_COMPLIANT
            elif warning:
                status = ComplianceStatus.PARTIAL
            else:
                status = ComplianceStatus.COMPLIANT

            stability = self.stability_scorer.calculate(ordered) if ordered else None
            debt = self.complexity_analyzer.analyze_technical_debt(spec) if spec is not None else None
            report = ComplianceReport(
                api_name=name,
                versions_analyzed=len(ordered),
                generated_at=_now(),
                status=status,
                level=ComplianceLevel.from_score(score),
                score=score,
                checks=checks,
                violations=violations,
                recommendations=self.recommendation_engine.generate_recommendations(stability=stability, debt=debt),
                passed_checks=passed,
                failed_checks=failed,
                warning_checks=warning,
            )
        log.info("report.generated", report="compliance", api=name, status=status.value, score=score)
        return report

    def _run_checks(
        self, spec: ApiSpec | None, ordered: list[Changelog]
    ) -> tuple[list[ComplianceCheck], list[ComplianceViolation]]:
        checks: list[ComplianceCheck] = []
        violations: list[ComplianceViolation] = []

        version = spec.version if spec is not None else ""
        checks.append(
            ComplianceCheck(
                name="api_version_present",
                category="metadata",
                status=CheckStatus.PASSED if version else CheckStatus.FAILED,
                message=f"API version is {version}" if version else "API version is missing",
            )
        )
        api_name = spec.name if spec is not None else ""
        checks.append(
            ComplianceCheck(
                name="api_name_present",
                category="metadata",
                status=CheckStatus.PASSED if api_name else CheckStatus.FAILED,
                message=f"API name is {api_name}" if api_name else "API name is missing",
            )
        )

        checks.append(self._check_undocumented_breaking(ordered, violations))
        checks.append(self._check_deprecation_before_breaking(ordered))
        checks.append(self._check_semver(ordered, violations))
        checks.append(self._check_documentation(spec))
        return checks, violations

    def _check_undocumented_breaking(
        self, ordered: list[Changelog], violations: list[ComplianceViolation]
    ) -> ComplianceCheck:
        name, category = "no_undocumented_breaking_changes", "versioning"
        breaking = [c for c in ordered if breaking_count(c) > 0]
        if not ordered:
            return ComplianceCheck(name=name, category=category, status=CheckStatus.SKIPPED, message="No history")
        silent = [c for c in breaking if not c.to_version or c.to_version == c.from_version]
        for c in silent:
            violations.append(
                ComplianceViolation(
                    rule=name,
                    severity=RiskLevel.HIGH,
                    location=c.to_version or c.generated_at.isoformat(),
                    description=f"{breaking_count(c)} breaking change(s) shipped without a new version",
                )
            )
        if silent:
            return ComplianceCheck(
                name=name,
                category=category,
                status=CheckStatus.FAILED,
                message=f"{len(silent)} release(s) shipped breaking changes without a version change",
            )
        return ComplianceCheck(
            name=name, category=category, status=CheckStatus.PASSED, message="Every breaking change is versioned"
        )

    def _check_deprecation_before_breaking(self, ordered: list[Changelog]) -> ComplianceCheck:
        name, category = "deprecation_before_breaking", "deprecation"
        if not ordered:
            return ComplianceCheck(name=name, category=category, status=CheckStatus.SKIPPED, message="No history")
        score = self.stability_scorer.deprecation_score(ordered)
        if score >= 100:
            status = CheckStatus.PASSED
        elif score >= 50:
            status = CheckStatus.WARNING
        else:
            status = CheckStatus.FAILED
        return ComplianceCheck(
            name=name,
            category=category,
            status=status,
            message=f"{score:.0f}% of endpoint removals were deprecated first",
        )

    def _check_semver(self, ordered: list[Changelog], violations: list[ComplianceViolation]) -> ComplianceCheck:
        name, category = "semantic_versioning", "versioning"
        evaluated = 0
        mismatched = 0
        for c in ordered:
            old, new = parse_version(c.from_version), parse_version(c.to_version)
            if old is None or new is None:
                continue
            evaluated += 1
            required = c.risk_assessment.semver_recommendation
            actual = actual_bump(old, new)
            if not bump_satisfies(old, actual, required):
                mismatched += 1
                violations.append(
                    ComplianceViolation(
                        rule=name,
                        severity=RiskLevel.MEDIUM,
                        location=f"{c.from_version} -> {c.to_version}",
                        description=f"{actual.value} bump where {required.value} was required",
                    )
                )
        if evaluated == 0:
            return ComplianceCheck(
                name=name, category=category, status=CheckStatus.SKIPPED, message="No comparable versions"
            )
        if mismatched:
            return ComplianceCheck(
                name=name,
                category=category,
                status=CheckStatus.FAILED,
                message=f"{mismatched} of {evaluated} release(s) under-bumped the version",
            )
        return ComplianceCheck(
            name=name, category=category, status=CheckStatus.PASSED, message=f"{evaluated} release(s) follow semver"
        )

    def _check_documentation(self, spec: ApiSpec | None) -> ComplianceCheck:
        name, category = "documentation_coverage", "documentation"
        if spec is None or not spec.endpoints:
            return ComplianceCheck(name=name, category=category, status=CheckStatus.SKIPPED, message="No endpoints")
        coverage = self.metrics_calculator.documentation_coverage(spec)
        if coverage >= self.config.insights.min_documentation_coverage:
            status = CheckStatus.PASSED
        elif coverage >= 0.5:
            status = CheckStatus.WARNING
        else:
            status = CheckStatus.FAILED
        return ComplianceCheck(
            name=name,
            category=category,
            status=status,
            message=f"{coverage * 100:.0f}% of endpoints are documented",
        )
