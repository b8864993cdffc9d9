"""Shared handling of changelog histories for the analytics calculators."""

from api_changelog.generator.changelog import ChangelogGenerator
from api_changelog.model.base import Changelog

_generator = ChangelogGenerator()


def prepare_history(history: list[Changelog] | None) -> list[Changelog]:
    """Oldest-first copy of `history` with every changelog fully assembled.

    Changelogs produced by `compare_specs` carry no breaking changes or risk
    yet; they are assessed here so every calculator sees the same numbers.
    The caller's list is left untouched.
    """
    if not history:
        return []
    # stable: transitions sharing a timestamp keep their input order
    ordered = sorted(history, key=lambda c: c.generated_at)
    return [c if c.risk_assessment is not None else _generator.assemble(c) for c in ordered]


def breaking_count(changelog: Changelog) -> int:
    return len(changelog.breaking_changes)


def risk_score_of(changelog: Changelog) -> int:
    if changelog.risk_assessment is None:
        return _generator.assess_risk(changelog).overall_score
    return changelog.risk_assessment.overall_score
