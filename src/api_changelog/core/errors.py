"""Error types with typed error codes.

Absent or empty inputs are never errors: they resolve to neutral defaults
(empty changelog, perfect stability, LOW risk, PATCH). Only malformed
canonical input and genuine computation failures raise.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Typed error codes for programmatic handling."""

    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    INVALID_INPUT = "INVALID_INPUT"
    CALCULATION_ERROR = "CALCULATION_ERROR"
    AGGREGATION_ERROR = "AGGREGATION_ERROR"
    REPORT_GENERATION_ERROR = "REPORT_GENERATION_ERROR"
    CONFIG_PARSE_ERROR = "CONFIG_PARSE_ERROR"


@dataclass(eq=False)
class AnalyticsError(Exception):
    """Base error with structured context for CI tooling and logs."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    @classmethod
    def insufficient_data(cls, operation: str, required: int, actual: int) -> "AnalyticsError":
        return cls(
            code=ErrorCode.INSUFFICIENT_DATA,
            message=(
                f"Insufficient data for {operation}: required {required} data points, "
                f"but only {actual} available"
            ),
            details={"operation": operation, "required": required, "actual": actual},
        )

    @classmethod
    def invalid_input(cls, reason: str, **details: Any) -> "AnalyticsError":
        return cls(
            code=ErrorCode.INVALID_INPUT,
            message=f"Invalid input: {reason}",
            details=details,
        )

    @classmethod
    def calculation_error(cls, operation: str, reason: str, **details: Any) -> "AnalyticsError":
        return cls(
            code=ErrorCode.CALCULATION_ERROR,
            message=f"Calculation failed in {operation}: {reason}",
            details={"operation": operation, **details},
        )

    @classmethod
    def aggregation_error(cls, operation: str, reason: str, **details: Any) -> "AnalyticsError":
        return cls(
            code=ErrorCode.AGGREGATION_ERROR,
            message=f"Aggregation failed in {operation}: {reason}",
            details={"operation": operation, **details},
        )

    @classmethod
    def report_generation_error(cls, report: str, cause: BaseException, **details: Any) -> "AnalyticsError":
        return cls(
            code=ErrorCode.REPORT_GENERATION_ERROR,
            message=f"Failed to generate {report}: {cause}",
            details={"report": report, "cause": type(cause).__name__, **details},
        )

    @classmethod
    def config_parse_error(cls, path: str, reason: str) -> "AnalyticsError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )
