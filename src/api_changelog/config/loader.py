"""Configuration loading with pydantic-settings.

Precedence (first wins):
1. Direct kwargs
2. Environment variables (API_CHANGELOG__SECTION__KEY)
3. YAML config file
4. Built-in defaults
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from api_changelog.config.models import (
    AnalyticsConfig,
    DebtConfig,
    InsightConfig,
    LoggingConfig,
    StabilityConfig,
    TrendConfig,
    VelocityConfig,
)
from api_changelog.core.errors import AnalyticsError


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise AnalyticsError.config_parse_error(str(path), "file not found")
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise AnalyticsError.config_parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise AnalyticsError.config_parse_error(str(path), "top level must be a mapping")
    return data


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class bound to one YAML document."""

    class AnalyticsSettings(BaseSettings):
        """Env vars: API_CHANGELOG__LOGGING__LEVEL, API_CHANGELOG__DEBT__ACCEPTABLE_SCORE, etc."""

        model_config = SettingsConfigDict(
            env_prefix="API_CHANGELOG__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        stability: StabilityConfig = StabilityConfig()
        trend: TrendConfig = TrendConfig()
        velocity: VelocityConfig = VelocityConfig()
        debt: DebtConfig = DebtConfig()
        insights: InsightConfig = InsightConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return AnalyticsSettings


def load_config(path: Path | None = None, **kwargs: Any) -> AnalyticsConfig:
    """Load config: defaults < YAML file < env vars < kwargs.

    Raises:
        AnalyticsError: CONFIG_PARSE_ERROR on unreadable YAML or invalid values.
    """
    yaml_config = _load_yaml(path) if path is not None else {}
    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise AnalyticsError.config_parse_error(str(path) if path else "<env>", f"{field}: {err['msg']}") from e
    return AnalyticsConfig.model_validate(settings.model_dump())
