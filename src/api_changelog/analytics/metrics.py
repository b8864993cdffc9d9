"""Per-spec metrics, complexity and technical debt."""

import re
from datetime import date

import structlog

from api_changelog.config.models import AnalyticsConfig
from api_changelog.core.errors import AnalyticsError
from api_changelog.model.base import ApiSpec, Endpoint
from .models import ApiMetrics, DebtItem, DebtSeverity, DebtType, TechnicalDebt
from .stability import round_half_up

log = structlog.get_logger()

# complexity weights
ENDPOINT_WEIGHT = 1
PARAMETER_WEIGHT = 2
NESTED_SCHEMA_WEIGHT = 3
RESPONSE_WEIGHT = 1

# debt points per issue
_DEPRECATION_POINTS = {DebtSeverity.LOW: 1.0, DebtSeverity.WARNING: 2.0, DebtSeverity.CRITICAL: 3.0}
_UNDOCUMENTED_ENDPOINT_POINTS = 1.0
_UNDOCUMENTED_PARAMETER_POINTS = 0.5
_NAMING_POINTS = 1.0

_PATH_TEMPLATE = re.compile(r"\{[^}]*\}")


def nested_schema_count(endpoint: Endpoint) -> int:
    """Schema nodes below the request body and response roots of one endpoint."""
    count = 0
    if endpoint.request_body is not None and endpoint.request_body.schema_ is not None:
        count += endpoint.request_body.schema_.nested_count()
    for response in endpoint.responses.values():
        if response.schema_ is not None:
            count += response.schema_.nested_count()
    return count


class ComplexityAnalyzer:
    def __init__(self, config: AnalyticsConfig | None = None):
        self.config = config or AnalyticsConfig()

    def analyze_complexity(self, spec: ApiSpec | None) -> int:
        """1*endpoints + 2*parameters + 3*nested schemas + 1*response codes."""
        if spec is None:
            return 0
        endpoints = spec.endpoints
        return (
            ENDPOINT_WEIGHT * len(endpoints)
            + PARAMETER_WEIGHT * sum(len(e.parameters) for e in endpoints)
            + NESTED_SCHEMA_WEIGHT * sum(nested_schema_count(e) for e in endpoints)
            + RESPONSE_WEIGHT * sum(len(e.responses) for e in endpoints)
        )

    def complexity_level(self, score: int) -> str:
        if score <= 20:
            return "Simple"
        if score <= 40:
            return "Low"
        if score <= 60:
            return "Moderate"
        if score <= 80:
            return "High"
        return "Very High"

    def analyze_technical_debt(self, spec: ApiSpec | None, as_of: date | None = None) -> TechnicalDebt:
        """Debt of one snapshot; deprecation ages are measured at `as_of`.

        `as_of` defaults to the spec's parse date. Without either, deprecated
        endpoints count as debt but cannot age into warning or critical.
        """
        if spec is None:
            return TechnicalDebt()

        if as_of is None and spec.parsed_at is not None:
            as_of = spec.parsed_at.date()

        cfg = self.config.debt
        try:
            naming = re.compile(cfg.naming_pattern)
        except re.error as e:
            raise AnalyticsError.calculation_error("technical debt", f"bad naming pattern: {e}") from e

        items: list[DebtItem] = []
        points = 0.0

        for endpoint in spec.endpoints:
            name = endpoint.display_name

            if endpoint.deprecated:
                item = self._deprecation_item(endpoint, as_of)
                items.append(item)
                points += _DEPRECATION_POINTS[item.severity]

            if not endpoint.description.strip():
                items.append(
                    DebtItem(
                        type=DebtType.MISSING_DOCUMENTATION,
                        path=name,
                        description=f"Endpoint {name} has no description",
                    )
                )
                points += _UNDOCUMENTED_ENDPOINT_POINTS

            for param in endpoint.parameters:
                if not param.description.strip():
                    items.append(
                        DebtItem(
                            type=DebtType.UNDOCUMENTED_PARAMETER,
                            path=f"{name} {param.location.value}:{param.name}",
                            description=f"Parameter '{param.name}' has no description",
                        )
                    )
                    points += _UNDOCUMENTED_PARAMETER_POINTS

            if endpoint.path and not naming.match(_PATH_TEMPLATE.sub("{}", endpoint.path)):
                items.append(
                    DebtItem(
                        type=DebtType.INCONSISTENT_NAMING,
                        path=name,
                        description=f"Path {endpoint.path} does not follow lowercase naming",
                    )
                )
                points += _NAMING_POINTS

        endpoint_count = len(spec.endpoints)
        debt_score = min(100, round_half_up(points / (3 * endpoint_count) * 100)) if endpoint_count else 0

        debt = TechnicalDebt(
            api_name=spec.name,
            version=spec.version,
            total_endpoints=endpoint_count,
            deprecated_endpoints_count=_count(items, DebtType.DEPRECATED_ENDPOINT),
            warning_debt_count=sum(
                1 for i in items if i.type == DebtType.DEPRECATED_ENDPOINT and i.severity == DebtSeverity.WARNING
            ),
            critical_debt_count=sum(
                1 for i in items if i.type == DebtType.DEPRECATED_ENDPOINT and i.severity == DebtSeverity.CRITICAL
            ),
            missing_documentation_count=_count(items, DebtType.MISSING_DOCUMENTATION),
            undocumented_parameters_count=_count(items, DebtType.UNDOCUMENTED_PARAMETER),
            inconsistent_naming_count=_count(items, DebtType.INCONSISTENT_NAMING),
            complexity_score=self.analyze_complexity(spec),
            debt_score=debt_score,
            acceptable=debt_score <= cfg.acceptable_score,
            items=items,
        )
        log.debug("debt.analyzed", api=spec.name, version=spec.version, score=debt_score, items=len(items))
        return debt

    def _deprecation_item(self, endpoint: Endpoint, as_of: date | None) -> DebtItem:
        cfg = self.config.debt
        age = None
        severity = DebtSeverity.LOW
        if endpoint.deprecated_since is not None and as_of is not None:
            age = (as_of - endpoint.deprecated_since).days
            if age > cfg.critical_age_days:
                severity = DebtSeverity.CRITICAL
            elif age > cfg.warning_age_days:
                severity = DebtSeverity.WARNING
        description = f"Endpoint {endpoint.display_name} is deprecated"
        if age is not None:
            description += f" since {endpoint.deprecated_since.isoformat()} ({age} days)"
        return DebtItem(
            type=DebtType.DEPRECATED_ENDPOINT,
            path=endpoint.display_name,
            severity=severity,
            description=description,
            since=endpoint.deprecated_since,
            age_days=age,
        )


def _count(items: list[DebtItem], debt_type: DebtType) -> int:
    return sum(1 for i in items if i.type == debt_type)


class MetricsCalculator:
    def __init__(self, config: AnalyticsConfig | None = None):
        self.complexity_analyzer = ComplexityAnalyzer(config)

    def calculate(self, spec: ApiSpec | None) -> ApiMetrics:
        if spec is None:
            return ApiMetrics()

        endpoints = spec.endpoints
        total = len(endpoints)
        parameters = sum(len(e.parameters) for e in endpoints)
        responses = sum(len(e.responses) for e in endpoints)

        return ApiMetrics(
            api_name=spec.name,
            version=spec.version,
            total_endpoints=total,
            deprecated_endpoints=sum(1 for e in endpoints if e.deprecated),
            total_parameters=parameters,
            total_responses=responses,
            nested_schemas=sum(nested_schema_count(e) for e in endpoints),
            average_parameters_per_endpoint=parameters / total if total else 0.0,
            average_response_codes_per_endpoint=responses / total if total else 0.0,
            documentation_coverage=self.documentation_coverage(spec),
            complexity_score=self.complexity_analyzer.analyze_complexity(spec),
        )

    def documentation_coverage(self, spec: ApiSpec | None) -> float:
        if spec is None or not spec.endpoints:
            return 0.0
        documented = sum(1 for e in spec.endpoints if e.description.strip())
        return documented / len(spec.endpoints)

    def aggregate(self, specs: list[ApiSpec | None] | None) -> ApiMetrics:
        """Additive totals over several specs; order does not matter."""
        metrics = [self.calculate(s) for s in specs or [] if s is not None]
        return aggregate_metrics(metrics)

    def compare(self, old: ApiSpec | None, new: ApiSpec | None) -> ApiMetrics:
        """Numeric difference new - old, field by field."""
        return diff_metrics(self.calculate(old), self.calculate(new))


def aggregate_metrics(metrics: list[ApiMetrics]) -> ApiMetrics:
    if not metrics:
        return ApiMetrics()
    total = sum(m.total_endpoints for m in metrics)
    parameters = sum(m.total_parameters for m in metrics)
    responses = sum(m.total_responses for m in metrics)
    documented = sum(m.documentation_coverage * m.total_endpoints for m in metrics)
    return ApiMetrics(
        api_name="aggregate",
        total_endpoints=total,
        deprecated_endpoints=sum(m.deprecated_endpoints for m in metrics),
        total_parameters=parameters,
        total_responses=responses,
        nested_schemas=sum(m.nested_schemas for m in metrics),
        average_parameters_per_endpoint=parameters / total if total else 0.0,
        average_response_codes_per_endpoint=responses / total if total else 0.0,
        documentation_coverage=documented / total if total else 0.0,
        complexity_score=sum(m.complexity_score for m in metrics),
    )


def diff_metrics(old: ApiMetrics, new: ApiMetrics) -> ApiMetrics:
    numeric = {
        name: getattr(new, name) - getattr(old, name)
        for name, field in ApiMetrics.model_fields.items()
        if field.annotation in (int, float)
    }
    return ApiMetrics(api_name=new.api_name or old.api_name, version=new.version, **numeric)
