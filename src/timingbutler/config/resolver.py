"""Layered configuration resolution: project over local over defaults."""

import logging
from typing import Mapping, Optional

from timingbutler.config.schema import DEFAULTS, PROJECT_FALLTHROUGH, ButlerConfig
from timingbutler.config.store import ConfigStore

logger = logging.getLogger(__name__)


def merge_config(
    project: Mapping[str, Optional[int]],
    local: Mapping[str, Optional[int]],
    defaults: Mapping[str, int] = DEFAULTS,
) -> dict[str, int]:
    """Merge per-scope values key by key.

    A project value wins over a local one, and a local value wins over the
    default.  ``None`` in a scope means the scope has nothing to say.
    """
    merged: dict[str, int] = {}
    for key, default in defaults.items():
        project_value = project.get(key)
        local_value = local.get(key)
        if project_value is not None:
            merged[key] = project_value
        elif local_value is not None:
            merged[key] = local_value
        else:
            merged[key] = default
    return merged


def resolve_config(project: Optional[ConfigStore], local: ConfigStore) -> ButlerConfig:
    """Resolve the effective :class:`ButlerConfig` for one butler call.

    Keys missing from both scopes get their default written to the local
    store and a fall-through marker written to the project store, so both
    files list every setting for later editing.
    """
    project_values = project.values() if project is not None else {}
    local_values = local.values()

    missing = [
        key for key in DEFAULTS
        if local_values.get(key) is None and project_values.get(key) is None
    ]
    if missing:
        logger.debug("Writing default config values for %s", ", ".join(missing))
        local.set_many({key: DEFAULTS[key] for key in missing})
        if project is not None:
            project.set_many({key: PROJECT_FALLTHROUGH for key in missing})

    return ButlerConfig.from_keys(merge_config(project_values, local_values))
