"""CLI entry point for api-changelog."""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path

import click
from pydantic import BaseModel

from api_changelog.analytics.service import AnalyticsService
from api_changelog.config.loader import load_config
from api_changelog.core.errors import AnalyticsError
from api_changelog.core.logging import configure_logging
from api_changelog.generator.changelog import analyze as analyze_specs
from api_changelog.generator.changelog import compare_specs
from api_changelog.model.loader import load_spec, load_specs

# exit codes: 1 = breaking changes found (--fail-on-breaking), 2 = analysis error
EXIT_BREAKING = 1
EXIT_ERROR = 2

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

SPEC_PATH = click.Path(exists=True, dir_okay=False, path_type=Path)


@contextmanager
def _analytics_errors() -> Iterator[None]:
    try:
        yield
    except AnalyticsError as e:
        err = click.ClickException(str(e))
        err.exit_code = EXIT_ERROR
        raise err from e


def _emit(result: BaseModel, output: Path | None, label: str) -> None:
    """Write a result as JSON to `output`, or to stdout."""
    text = result.model_dump_json(indent=2)
    if output is None:
        click.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    click.echo(f"{label} saved to {output}", err=True)


def _service(ctx: click.Context) -> AnalyticsService:
    return ctx.obj["service"]


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None, help="YAML config file.")
@click.option("--log-level", default=None, type=click.Choice(_LOG_LEVELS, case_sensitive=False), help="Override the configured log level.")
@click.option("--log-json", is_flag=True, help="Emit logs as JSON lines.")
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, log_level: str | None, log_json: bool):
    """API Changelog: detect breaking changes and analyze how an API evolves."""
    with _analytics_errors():
        config = load_config(config_path)

    overrides = {}
    if log_level:
        overrides["level"] = log_level.upper()
    if log_json:
        overrides["format"] = "json"
    configure_logging(config=config.logging.model_copy(update=overrides))

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["service"] = AnalyticsService(config)


@main.command()
@click.argument("old_path", type=SPEC_PATH)
@click.argument("new_path", type=SPEC_PATH)
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Write the changelog JSON here instead of stdout.")
def compare(old_path: Path, new_path: Path, output: Path | None):
    """List the classified changes between two spec snapshots."""
    with _analytics_errors():
        changelog = compare_specs(load_spec(old_path), load_spec(new_path))
    _emit(changelog, output, "Changelog")


@main.command()
@click.argument("old_path", type=SPEC_PATH)
@click.argument("new_path", type=SPEC_PATH)
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Write the changelog JSON here instead of stdout.")
@click.option("--fail-on-breaking", is_flag=True, help=f"Exit with status {EXIT_BREAKING} when breaking changes are found.")
@click.pass_context
def analyze(ctx: click.Context, old_path: Path, new_path: Path, output: Path | None, fail_on_breaking: bool):
    """Full analysis of one transition: changes, breaking changes and risk."""
    with _analytics_errors():
        changelog = analyze_specs(load_spec(old_path), load_spec(new_path))
    _emit(changelog, output, "Changelog")

    risk = changelog.risk_assessment
    click.echo(
        f"{len(changelog.breaking_changes)} breaking of {len(changelog.changes)} change(s), "
        f"risk {risk.level.value} ({risk.overall_score}), {risk.semver_recommendation.value} bump",
        err=True,
    )
    if fail_on_breaking and changelog.breaking_changes:
        ctx.exit(EXIT_BREAKING)


@main.command()
@click.argument("spec_paths", nargs=-1, required=True, type=SPEC_PATH)
@click.option("--api-name", default=None, help="Name to report under (default: the newest spec's name).")
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Write the report JSON here instead of stdout.")
@click.pass_context
def evolution(ctx: click.Context, spec_paths: tuple[Path, ...], api_name: str | None, output: Path | None):
    """Evolution report over spec snapshots given oldest first."""
    with _analytics_errors():
        report = _service(ctx).generate_spec_evolution_report(load_specs(list(spec_paths)), api_name=api_name)
    _emit(report, output, "Evolution report")


@main.command()
@click.argument("spec_paths", nargs=-1, required=True, type=SPEC_PATH)
@click.option("--api-name", default=None, help="Name to report under.")
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Write the report JSON here instead of stdout.")
@click.pass_context
def stability(ctx: click.Context, spec_paths: tuple[Path, ...], api_name: str | None, output: Path | None):
    """Stability report over spec snapshots given oldest first."""
    service = _service(ctx)
    with _analytics_errors():
        history = service.build_history(load_specs(list(spec_paths)))
        report = service.generate_stability_report(history, api_name=api_name)
    _emit(report, output, "Stability report")


@main.command("risk-trend")
@click.argument("spec_paths", nargs=-1, required=True, type=SPEC_PATH)
@click.option("--api-name", default=None, help="Name to report under.")
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Write the report JSON here instead of stdout.")
@click.pass_context
def risk_trend(ctx: click.Context, spec_paths: tuple[Path, ...], api_name: str | None, output: Path | None):
    """Risk trend report over spec snapshots given oldest first."""
    service = _service(ctx)
    with _analytics_errors():
        history = service.build_history(load_specs(list(spec_paths)))
        report = service.generate_risk_trend_report(history, api_name=api_name)
    _emit(report, output, "Risk trend report")


@main.command()
@click.argument("spec_path", type=SPEC_PATH)
@click.option("--as-of", default=None, type=click.DateTime(formats=["%Y-%m-%d"]), help="Date deprecation ages are measured at (default: the spec's parsed_at).")
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Write the report JSON here instead of stdout.")
@click.pass_context
def debt(ctx: click.Context, spec_path: Path, as_of, output: Path | None):
    """Technical debt report for one spec snapshot."""
    as_of_date: date | None = as_of.date() if as_of is not None else None
    with _analytics_errors():
        report = _service(ctx).generate_technical_debt_report(load_spec(spec_path), as_of=as_of_date)
    _emit(report, output, "Technical debt report")


@main.command()
@click.argument("spec_path", type=SPEC_PATH)
@click.argument("history_paths", nargs=-1, type=SPEC_PATH)
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Write the report JSON here instead of stdout.")
@click.pass_context
def compliance(ctx: click.Context, spec_path: Path, history_paths: tuple[Path, ...], output: Path | None):
    """Compliance report for SPEC; earlier snapshots (oldest first) supply the release history."""
    service = _service(ctx)
    with _analytics_errors():
        spec = load_spec(spec_path)
        history = service.build_history([*load_specs(list(history_paths)), spec]) if history_paths else []
        report = service.generate_compliance_report(spec, history=history)
    _emit(report, output, "Compliance report")
