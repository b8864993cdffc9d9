"""Breaking-change detector.

`is_breaking` is the single test used everywhere: a change is breaking when
its severity (classified on demand) is BREAKING. DANGEROUS changes are
reported but never counted as breaking.
"""

from api_changelog.model.base import BreakingChange, Change, ChangeCategory, ChangeType, Severity
from .severity import SeverityClassifier

_CATEGORY_MULTIPLIER = {
    ChangeCategory.ENDPOINT: 100,
    ChangeCategory.REQUEST_BODY: 90,
    ChangeCategory.PARAMETER: 80,
    ChangeCategory.RESPONSE: 70,
}

_REMOVAL_HINTS = {
    ChangeCategory.ENDPOINT: (
        "Update all API consumers to stop using the removed endpoint. "
        "Consider using an alternative endpoint if available."
    ),
    ChangeCategory.PARAMETER: "Remove the parameter '{name}' from all API calls.",
    ChangeCategory.RESPONSE: "Update response handling code to account for the removed response type.",
    ChangeCategory.REQUEST_BODY: "Remove the request body from API calls to this endpoint.",
}

_ADDITION_HINTS = {
    ChangeCategory.PARAMETER: "Add the new required parameter '{name}' to all API calls.",
    ChangeCategory.REQUEST_BODY: "Include the required request body in API calls to this endpoint.",
}


def _field_name(path: str) -> str:
    """Last meaningful segment of a change path: `...parameters.limit.required` -> `limit`."""
    segments = path.split(".")
    while len(segments) > 1 and segments[-1] in ("required", "type", "schema", "contentType"):
        segments.pop()
    return segments[-1]


class BreakingChangeDetector:
    def __init__(self, classifier: SeverityClassifier | None = None):
        self.classifier = classifier or SeverityClassifier()

    def is_breaking(self, change: Change | None) -> bool:
        if change is None:
            return False
        severity = change.severity or self.classifier.classify(change)
        return severity == Severity.BREAKING

    def detect(self, changes: list[Change] | None) -> list[BreakingChange]:
        """Every breaking change, in input order, with impact score and migration hint."""
        if not changes:
            return []
        return [self._to_breaking_change(change) for change in changes if self.is_breaking(change)]

    def _to_breaking_change(self, change: Change) -> BreakingChange:
        data = change.model_dump()
        data["severity"] = Severity.BREAKING
        return BreakingChange(
            **data,
            impact_score=self.impact_score(change),
            migration_suggestion=self.migration_suggestion(change),
        )

    def impact_score(self, change: Change) -> int:
        if change.type == ChangeType.REMOVED:
            base = 100 if change.category == ChangeCategory.ENDPOINT else 80
        elif change.type == ChangeType.ADDED:
            base = 70
        elif change.type in (ChangeType.MODIFIED, ChangeType.REQUIRED_CHANGED, ChangeType.TYPE_CHANGED):
            base = 85
        else:
            base = 50
        multiplier = _CATEGORY_MULTIPLIER.get(change.category, 100)
        return max(0, min(100, base * multiplier // 100))

    def migration_suggestion(self, change: Change) -> str:
        name = _field_name(change.path)

        if change.type == ChangeType.REMOVED:
            hint = _REMOVAL_HINTS.get(change.category, "Update client code to handle the removal.")
            return hint.format(name=name)
        if change.type == ChangeType.ADDED:
            hint = _ADDITION_HINTS.get(change.category, "Update client code to provide the new required field.")
            return hint.format(name=name)
        if change.type == ChangeType.REQUIRED_CHANGED:
            return f"'{name}' is now required. Ensure all API calls include it."
        if change.type == ChangeType.TYPE_CHANGED:
            if change.path.endswith(".schema"):
                return "Update request/response handling to match the new schema structure."
            return f"Update the data type for '{name}' from '{change.old_value}' to '{change.new_value}'."
        return "Review the change and update client code accordingly."
