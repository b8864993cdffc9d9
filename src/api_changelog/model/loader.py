"""Load canonical ApiSpec / Changelog documents from YAML or JSON files.

The documents are expected to already be in the canonical model shape;
format-specific parsing (OpenAPI, AsyncAPI, ...) happens upstream.
"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from api_changelog.core.errors import AnalyticsError
from .base import ApiSpec, Changelog


def _read_document(file_path: Path) -> dict:
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise AnalyticsError.invalid_input(f"cannot read {file_path}: {e}", path=str(file_path)) from e

    # YAML is a superset of JSON, one loader covers both
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise AnalyticsError.invalid_input(f"{file_path} is not valid YAML/JSON: {e}", path=str(file_path)) from e

    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise AnalyticsError.invalid_input(
            f"{file_path} must contain a mapping, got {type(doc).__name__}", path=str(file_path)
        )
    return doc


def _error_lines(e: ValidationError) -> list[str]:
    return [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]


def load_spec(file_path: Path) -> ApiSpec:
    """Load a canonical API spec. An empty file is a spec with zero endpoints."""
    doc = _read_document(file_path)
    try:
        return ApiSpec.model_validate(doc)
    except ValidationError as e:
        raise AnalyticsError.invalid_input(
            f"{file_path} is not a canonical API spec", path=str(file_path), errors=_error_lines(e)
        ) from e


def load_specs(file_paths: list[Path]) -> list[ApiSpec]:
    return [load_spec(p) for p in file_paths]


def load_changelog(file_path: Path) -> Changelog:
    doc = _read_document(file_path)
    try:
        return Changelog.model_validate(doc)
    except ValidationError as e:
        raise AnalyticsError.invalid_input(
            f"{file_path} is not a changelog document", path=str(file_path), errors=_error_lines(e)
        ) from e
