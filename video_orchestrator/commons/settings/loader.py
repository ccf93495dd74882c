"""Settings loader merging JSON config files with environment overrides."""

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from video_orchestrator.commons.settings.models import Settings

ENV_PREFIX = "VIDEO_ORCH__"


class SettingsLoader:
    """Loads and merges configuration from multiple sources.

    Precedence, highest first: environment variables,
    ``appsettings.{env}.json``, ``appsettings.json``.
    """

    def __init__(
        self,
        config_dir: Path | None = None,
        environment: str | None = None,
    ) -> None:
        self.config_dir = config_dir or Path("config")
        self.environment = environment or os.getenv(
            f"{ENV_PREFIX}APP__ENVIRONMENT", "dev"
        )

    def load(self) -> Settings:
        """Resolve the final settings from every source."""
        merged: dict[str, Any] = {}
        for layer in (
            self._read_json("appsettings.json"),
            self._read_json(f"appsettings.{self.environment}.json"),
            env_overrides(os.environ),
        ):
            merged = deep_merge(merged, layer)
        return Settings(**merged)

    def _read_json(self, filename: str) -> dict[str, Any]:
        path = self.config_dir / filename
        if not path.exists():
            return {}
        with path.open(encoding="utf-8") as f:
            return dict(json.load(f))


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Turn ``VIDEO_ORCH__SECTION__KEY`` variables into a nested dict.

    Example:
        ``VIDEO_ORCH__PROCESSING__POLL_INTERVAL_SECONDS=2`` becomes
        ``{"processing": {"poll_interval_seconds": 2}}``.
    """
    result: dict[str, Any] = {}
    for key, raw in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        *parents, leaf = key[len(ENV_PREFIX) :].lower().split("__")
        node = result
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = coerce_env_value(raw)
    return result


def coerce_env_value(value: str) -> Any:
    """Best-effort conversion of an environment string to a JSON-ish value."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    if value.startswith(("[", "{")):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    result = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


_settings: Settings | None = None


def get_settings(
    config_dir: Path | None = None,
    environment: str | None = None,
    *,
    reload: bool = False,
) -> Settings:
    """Get or create the process-wide settings instance."""
    global _settings  # noqa: PLW0603
    if _settings is None or reload:
        loader = SettingsLoader(config_dir=config_dir, environment=environment)
        _settings = loader.load()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings instance. Useful for testing."""
    global _settings  # noqa: PLW0603
    _settings = None
