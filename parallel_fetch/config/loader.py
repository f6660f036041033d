"""Configuration and URL list loading helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .models import AppConfig, FetchConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
APP_CONFIG_FILENAME = "config.yaml"
HOME_ENV_VAR = "PARALLEL_FETCH_HOME"


def resolve_home(project_root: Path | None = None) -> Path:
    env_root = os.environ.get(HOME_ENV_VAR)
    if env_root:
        return Path(env_root).expanduser().resolve()
    return (project_root or Path.cwd()).resolve()


def _load_structured(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(text)
        return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ValueError(f"Invalid configuration syntax in {path}: {exc}") from exc


def _read_file(path: Path) -> dict:
    data = _load_structured(path) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def read_url_list(path: Path) -> list[str]:
    """Read URLs from a text file (one per line, ``#`` comments) or a YAML/JSON list.

    A YAML/JSON mapping with a ``urls`` key is accepted as well.
    """

    if not path.exists():
        raise FileNotFoundError(f"URL list not found: {path}")
    if path.suffix in CONFIG_EXTENSIONS:
        data = _load_structured(path)
        if isinstance(data, dict):
            data = data.get("urls")
        if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
            raise ValueError(f"URL list must be a list of strings: {path}")
        return [item.strip() for item in data if item.strip()]
    urls: list[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        urls.append(stripped)
    return urls


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from the project home."""

    project_root: Path | None = None
    data_dir: Path | None = None
    outputs_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        root = resolve_home(self.project_root)
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.outputs_dir = (self.data_dir / "outputs").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.outputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def app_config_path(self) -> Path:
        return self.data_dir / APP_CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: AppConfig | None = None

    def load_app_config(self) -> AppConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.app_config_path()
        if path.exists():
            config = AppConfig.model_validate(_read_file(path))
        else:
            config = AppConfig()
            self.save_app_config(config)
        self._cache = config
        return config

    def save_app_config(self, config: AppConfig) -> Path:
        path = self.locator.app_config_path()
        _write_file(path, config.model_dump(mode="json"))
        self._cache = config
        return path

    def load_fetch_config(self, **overrides: Any) -> FetchConfig:
        return self.load_app_config().fetch.with_overrides(**overrides)

    def update_fetch_config(self, **overrides: Any) -> AppConfig:
        current = self.load_app_config()
        updated = current.model_copy(update={"fetch": current.fetch.with_overrides(**overrides)})
        self.save_app_config(updated)
        return updated

    def resolve_output_path(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return (self.locator.project_root / path).resolve()


__all__ = [
    "APP_CONFIG_FILENAME",
    "CONFIG_EXTENSIONS",
    "ConfigLocator",
    "ConfigRepository",
    "HOME_ENV_VAR",
    "read_url_list",
    "resolve_home",
]
