"""Severity classifier: map a raw change onto INFO/WARNING/DANGEROUS/BREAKING."""

from typing import Any

from api_changelog.model.base import Change, ChangeCategory, ChangeType, Severity

_ENDPOINT_RULES = {
    ChangeType.REMOVED: Severity.BREAKING,
    ChangeType.ADDED: Severity.INFO,
    ChangeType.DEPRECATED: Severity.WARNING,
    ChangeType.MODIFIED: Severity.INFO,  # un-deprecation or description edit
}

_RESPONSE_RULES = {
    ChangeType.REMOVED: Severity.WARNING,
    ChangeType.ADDED: Severity.INFO,
    ChangeType.TYPE_CHANGED: Severity.DANGEROUS,
}


def _is_required(value: Any) -> bool:
    if isinstance(value, dict):
        return bool(value.get("required", False))
    return bool(value)


class SeverityClassifier:
    """Pure, total mapping from a change to a severity.

    Anything not covered by an explicit rule is WARNING, never INFO.
    """

    def classify(self, change: Change) -> Severity:
        if change.category == ChangeCategory.ENDPOINT:
            return _ENDPOINT_RULES.get(change.type, Severity.WARNING)
        if change.category in (ChangeCategory.PARAMETER, ChangeCategory.REQUEST_BODY):
            return self._classify_input(change)
        if change.category == ChangeCategory.RESPONSE:
            return _RESPONSE_RULES.get(change.type, Severity.WARNING)
        return Severity.WARNING

    def classify_all(self, changes: list[Change]) -> list[Change]:
        """Classified copies; changes that already carry a severity are kept as-is."""
        return [change.with_severity(self.classify(change)) for change in changes]

    def _classify_input(self, change: Change) -> Severity:
        """Parameters and request bodies share the required/optional rules."""
        if change.type == ChangeType.ADDED:
            return Severity.BREAKING if _is_required(change.new_value) else Severity.INFO
        if change.type == ChangeType.REMOVED:
            return Severity.BREAKING if _is_required(change.old_value) else Severity.WARNING
        if change.type == ChangeType.REQUIRED_CHANGED:
            if not _is_required(change.old_value) and _is_required(change.new_value):
                return Severity.BREAKING
            return Severity.INFO
        if change.type == ChangeType.TYPE_CHANGED:
            return Severity.DANGEROUS
        # content type switches land here
        return Severity.WARNING
