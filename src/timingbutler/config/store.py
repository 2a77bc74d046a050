"""JSON-backed configuration scopes for the butler.

Two scopes exist:

* **local**: per-user defaults at ``$TIMINGBUTLER_CONFIG_DIR/config.json``
  (``~/.timingbutler/config.json`` when the variable is unset).
* **project**: per-script overrides at ``<script>.butler.json`` beside the
  subtitle file.  A stored ``-1`` means "no override"; it reads back as
  ``None`` so the resolver falls through to the local scope.

Writes are atomic, using tempfile + ``os.replace()`` in the same directory
so the file is either the old or the new version,
never partially written.
"""

import json
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from timingbutler.config.schema import CONFIG_KEYS, PROJECT_FALLTHROUGH
from timingbutler.errors import ConfigError

LOCAL_CONFIG_FILENAME = "config.json"
PROJECT_CONFIG_SUFFIX = ".butler.json"


class ConfigScope(str, Enum):
    """Where a setting is stored.  Project values override local ones."""
    PROJECT = "project"
    LOCAL = "local"


_values_adapter: TypeAdapter[dict[str, int]] = TypeAdapter(dict[str, int])


def get_local_config_dir() -> Path:
    """Return the directory holding the local config.

    Respects the TIMINGBUTLER_CONFIG_DIR environment variable.
    Falls back to ~/.timingbutler when the variable is not set.
    """
    env_val = os.environ.get("TIMINGBUTLER_CONFIG_DIR")
    if env_val is not None:
        return Path(env_val).expanduser().resolve()
    return Path.home() / ".timingbutler"


def project_config_path(subtitle_path: Path) -> Path:
    """Return the project config path for a subtitle script."""
    return subtitle_path.with_name(subtitle_path.name + PROJECT_CONFIG_SUFFIX)


class ConfigStore:
    """One configuration scope persisted as a flat JSON object of integers."""

    def __init__(self, path: Path, scope: ConfigScope) -> None:
        self.path = path
        self.scope = ConfigScope(scope)
        self._values: dict[str, int] = self._load()

    @property
    def minimum(self) -> int:
        return PROJECT_FALLTHROUGH if self.scope is ConfigScope.PROJECT else 0

    def get(self, key: str) -> Optional[int]:
        """Return the effective value for *key*, or None if unset or falling through."""
        value = self._values.get(key)
        if value is None or value == PROJECT_FALLTHROUGH:
            return None
        return value

    def get_raw(self, key: str) -> Optional[int]:
        """Return the stored value for *key* including the ``-1`` marker."""
        return self._values.get(key)

    def values(self) -> dict[str, Optional[int]]:
        """Return ``get()`` for every known key."""
        return {key: self.get(key) for key in CONFIG_KEYS}

    def set(self, key: str, value: int) -> None:
        """Store *value* under *key* and persist the scope."""
        self.set_many({key: value})

    def set_many(self, updates: dict[str, int]) -> None:
        """Store several values with a single write."""
        for key, value in updates.items():
            self._check(key, value)
        self._values.update(updates)
        self._save()

    def _check(self, key: str, value: int) -> None:
        if key not in CONFIG_KEYS:
            raise ConfigError(self.path, f"Unknown setting '{key}'. Valid settings: {sorted(CONFIG_KEYS)}")
        if value < self.minimum:
            raise ConfigError(
                self.path,
                f"Setting '{key}' must be >= {self.minimum} in the {self.scope.value} scope, got {value}",
            )

    def _load(self) -> dict[str, int]:
        if not self.path.exists():
            return {}
        try:
            values = _values_adapter.validate_json(self.path.read_bytes())
        except ValidationError as e:
            field_errors = "; ".join(
                f"{' -> '.join(str(x) for x in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigError(self.path, f"Schema validation failed: {field_errors}") from e
        except OSError as e:
            raise ConfigError(self.path, str(e)) from e

        # Unknown keys are kept so they survive a rewrite, but are never read
        for key, value in values.items():
            if key in CONFIG_KEYS:
                self._check(key, value)
        return values

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(self._values, indent=2, sort_keys=True).encode("utf-8")
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".cfg.tmp")
        try:
            os.write(fd, data)
            os.fsync(fd)
            os.close(fd)
            os.replace(tmp_path, self.path)
        except Exception:
            os.close(fd)
            os.unlink(tmp_path)
            raise


def open_local_store(config_dir: Optional[Path] = None) -> ConfigStore:
    directory = config_dir if config_dir is not None else get_local_config_dir()
    return ConfigStore(directory / LOCAL_CONFIG_FILENAME, ConfigScope.LOCAL)


def open_project_store(path: Path) -> ConfigStore:
    return ConfigStore(path, ConfigScope.PROJECT)
