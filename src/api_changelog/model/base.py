"""Canonical API model and change value types.

Every format-specific producer (OpenAPI, AsyncAPI, GraphQL, gRPC) converts
its input into these models. The comparison and analytics engine consumes
nothing else. All models are frozen once built.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_utc(value: datetime) -> datetime:
    """Timestamps without a timezone are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ApiType(str, Enum):
    REST = "REST"
    GRAPHQL = "GRAPHQL"
    ASYNCAPI = "ASYNCAPI"
    GRPC = "GRPC"

    @property
    def is_event_driven(self) -> bool:
        return self is ApiType.ASYNCAPI


class ParameterLocation(str, Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"
    BODY = "body"


class Schema(BaseModel):
    """A schema fragment: a named/typed node with optional nested children."""

    model_config = ConfigDict(frozen=True)

    type: str = "object"
    ref: str | None = None
    format: str | None = None
    properties: dict[str, "Schema"] = {}
    items: "Schema | None" = None
    required: list[str] = []

    def nested_count(self) -> int:
        """Number of schema nodes below this one (properties and items, recursively)."""
        children = list(self.properties.values())
        if self.items is not None:
            children.append(self.items)
        return sum(1 + child.nested_count() for child in children)


class Parameter(BaseModel):
    """A single operation parameter. Identity is (name, location)."""

    model_config = ConfigDict(frozen=True)

    name: str
    location: ParameterLocation = ParameterLocation.QUERY
    required: bool = False
    type: str = "string"  # string / integer / boolean / array / object / message type
    default: Any = None
    description: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return self.name, self.location.value


class RequestBody(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    required: bool = False
    content_type: str = "application/json"
    schema_: Schema | None = Field(default=None, alias="schema")
    description: str = ""


class Response(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    description: str = ""
    content_type: str = "application/json"
    schema_: Schema | None = Field(default=None, alias="schema")


class Endpoint(BaseModel):
    """A single operation: REST path+method, GraphQL field, gRPC method or AsyncAPI channel."""

    model_config = ConfigDict(frozen=True)

    path: str | None = None
    method: str | None = None  # GET / POST / ... / QUERY / MUTATION / PUBLISH / SUBSCRIBE
    operation_id: str | None = None
    description: str = ""
    deprecated: bool = False
    deprecated_since: date | None = None
    tags: list[str] = []
    parameters: list[Parameter] = []
    request_body: RequestBody | None = None
    responses: dict[str, Response] = {}  # {status_code or message key: Response}

    @field_validator("method")
    @classmethod
    def _upper_method(cls, v: str | None) -> str | None:
        return v.upper() if v else v

    @field_validator("responses", mode="before")
    @classmethod
    def _stringify_status_codes(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(code): resp if resp is not None else {} for code, resp in v.items()}
        return v

    @property
    def key(self) -> str | None:
        """Identity within a spec, or None when the endpoint has none."""
        if self.path and self.method:
            return f"{self.method} {self.path}"
        return self.operation_id or self.path

    @property
    def location(self) -> str:
        if self.path and self.method:
            return f"endpoint:{self.path}[{self.method}]"
        return f"endpoint:{self.operation_id or self.path}"

    @property
    def display_name(self) -> str:
        if self.path and self.method:
            return f"{self.method} {self.path}"
        return self.operation_id or self.path or "<unnamed>"


class ApiSpec(BaseModel):
    """A parsed API description, whatever its source technology."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    version: str = ""
    api_type: ApiType = ApiType.REST
    endpoints: list[Endpoint] = []
    metadata: dict[str, Any] = {}
    parsed_at: datetime | None = None

    @field_validator("parsed_at")
    @classmethod
    def _utc_parsed_at(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else v


class ChangeType(str, Enum):
    ADDED = "ADDED"
    REMOVED = "REMOVED"
    MODIFIED = "MODIFIED"
    DEPRECATED = "DEPRECATED"
    TYPE_CHANGED = "TYPE_CHANGED"
    REQUIRED_CHANGED = "REQUIRED_CHANGED"


class ChangeCategory(str, Enum):
    ENDPOINT = "ENDPOINT"
    PARAMETER = "PARAMETER"
    REQUEST_BODY = "REQUEST_BODY"
    RESPONSE = "RESPONSE"


class Severity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    DANGEROUS = "DANGEROUS"
    BREAKING = "BREAKING"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.DANGEROUS: 2,
    Severity.BREAKING: 3,
}


class Change(BaseModel):
    """One structural difference between two specs.

    `severity` stays None until the classifier assigns it; after that the
    change is only ever copied, never reclassified.
    """

    model_config = ConfigDict(frozen=True)

    type: ChangeType
    category: ChangeCategory
    severity: Severity | None = None
    path: str  # endpoint:/users[GET].parameters.limit
    endpoint: str | None = None  # identity key of the affected endpoint
    description: str = ""
    old_value: Any = None
    new_value: Any = None

    def with_severity(self, severity: Severity) -> "Change":
        if self.severity is not None:
            return self
        return self.model_copy(update={"severity": severity})


class BreakingChange(Change):
    severity: Severity | None = Severity.BREAKING
    migration_suggestion: str = ""
    impact_score: int = 0


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class SemverBump(str, Enum):
    PATCH = "PATCH"
    MINOR = "MINOR"
    MAJOR = "MAJOR"

    @property
    def rank(self) -> int:
        return {"PATCH": 0, "MINOR": 1, "MAJOR": 2}[self.value]


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_score: int = 0
    level: RiskLevel = RiskLevel.LOW
    breaking_changes_count: int = 0
    total_changes_count: int = 0
    changes_by_severity: dict[Severity, int] = {}
    recommendation: str = ""
    semver_recommendation: SemverBump = SemverBump.PATCH


class Changelog(BaseModel):
    """Result of one old -> new transition; the unit of exchange downstream."""

    model_config = ConfigDict(frozen=True)

    api_name: str = ""
    from_version: str | None = None
    to_version: str | None = None
    generated_at: datetime
    changes: list[Change] = []
    breaking_changes: list[BreakingChange] = []
    risk_assessment: RiskAssessment | None = None
    # False when no snapshot carried a timestamp: generated_at then only orders the transition
    dated: bool = True

    @field_validator("generated_at")
    @classmethod
    def _utc_generated_at(cls, v: datetime) -> datetime:
        return as_utc(v)
