"""Read and write the YAML/JSON files under ``$INGEST_GUARD_HOME/data``."""

from __future__ import annotations

import hashlib
import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import yaml

from .models import GlobalConfig, SourceConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
GLOBAL_CONFIG_FILENAME = "global_config.yaml"
SOURCE_CONFIG_SUFFIX = ".yaml"

_DASH_RUN = re.compile(r"-{2,}")


def _slugify(name: str) -> str:
    slug = "".join(ch.lower() if ch.isalnum() else "-" for ch in name)
    slug = _DASH_RUN.sub("-", slug).strip("-")
    if slug:
        return slug
    # names made only of punctuation still need a stable, distinct file name
    return "source-" + hashlib.sha256(name.encode("utf-8")).hexdigest()[:10]


def _is_yaml(path: Path) -> bool:
    return path.suffix in (".yaml", ".yml")


def _read_file(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    data = (yaml.safe_load(text) or {}) if _is_yaml(path) else json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict[str, Any]) -> None:
    if _is_yaml(path):
        text = yaml.safe_dump(payload, allow_unicode=True, sort_keys=False)
    else:
        text = json.dumps(payload, indent=2, ensure_ascii=False)
    # write-then-rename so a concurrent reader never sees a half-written file
    staging = path.with_name(f".{path.name}.tmp")
    staging.write_text(text, encoding="utf-8")
    staging.replace(path)


@dataclass(slots=True)
class ConfigLocator:
    """Directory layout rooted at ``$INGEST_GUARD_HOME`` (or the checkout)."""

    project_root: Path | None = None
    data_dir: Path | None = None
    sources_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("INGEST_GUARD_HOME")
        if env_root:
            root = Path(env_root).expanduser()
        else:
            root = self.project_root or Path(__file__).resolve().parents[2]
        self.project_root = root.resolve()
        self.data_dir = self.project_root / "data"
        self.sources_dir = self.data_dir / "sources"
        self.logs_dir = self.project_root / "logs"
        for directory in (self.sources_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def global_config_path(self) -> Path:
        return self.data_dir / GLOBAL_CONFIG_FILENAME


class ConfigRepository:
    """Validated access to the global config and one file per source."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global: GlobalConfig | None = None

    def load_global_config(self) -> GlobalConfig:
        """Return the cached global config, writing defaults on first use."""

        if self._global is None:
            path = self.locator.global_config_path()
            if path.exists():
                self._global = GlobalConfig.model_validate(_read_file(path))
            else:
                self.save_global_config(GlobalConfig())
        return self._global

    def save_global_config(self, config: GlobalConfig) -> None:
        _write_file(self.locator.global_config_path(), config.model_dump(mode="json"))
        self._global = config

    def database_path(self) -> Path:
        return self.load_global_config().resolved_database_path(self.locator.project_root)

    def source_path(self, source_name: str) -> Path:
        return self.locator.sources_dir / f"{_slugify(source_name)}{SOURCE_CONFIG_SUFFIX}"

    def list_source_files(self) -> Iterable[Path]:
        return sorted(
            path
            for path in self.locator.sources_dir.iterdir()
            if path.is_file() and path.suffix in CONFIG_EXTENSIONS and not path.name.startswith(".")
        )

    def list_sources(self, purpose: str | None = None, active_only: bool = False) -> list[SourceConfig]:
        """Sources sorted by name; ``purpose``/``active_only`` keep only sources that serve it."""

        sources = [self.load_source(path) for path in self.list_source_files()]
        if purpose is not None or active_only:
            sources = [source for source in sources if source.serves(purpose)]
        sources.sort(key=lambda source: source.source_name.lower())
        return sources

    def find_source(self, source_id: int) -> SourceConfig | None:
        for source in self.list_sources():
            if source.source_id == source_id:
                return source
        return None

    def load_source(self, identifier: str | Path) -> SourceConfig:
        path = identifier if isinstance(identifier, Path) else self.source_path(identifier)
        if not path.exists():
            raise FileNotFoundError(f"Source configuration not found: {identifier}")
        return SourceConfig.model_validate(_read_file(path))

    def save_source(self, config: SourceConfig) -> Path:
        path = self.source_path(config.source_name)
        _write_file(path, config.model_dump(mode="json"))
        return path

    def delete_source(self, source_name: str) -> bool:
        path = self.source_path(source_name)
        if not path.exists():
            return False
        path.unlink()
        return True


__all__ = ["CONFIG_EXTENSIONS", "ConfigLocator", "ConfigRepository"]
