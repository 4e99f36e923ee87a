"""
Configuration loading.

tally.toml is optional; every field has a default. Example:

    [tally]
    data_dir = ".tally"
    journal_file = "journal.jsonl"
    journal_enabled = true
    log_level = "INFO"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .journal import DEFAULT_JOURNAL_FILE

CONFIG_FILENAME = "tally.toml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class TallyConfig:
    data_dir: Path = field(default_factory=lambda: Path(".tally"))
    journal_file: str = DEFAULT_JOURNAL_FILE
    journal_enabled: bool = True
    log_level: str = "WARNING"

    @property
    def journal_path(self) -> Path:
        return self.data_dir / self.journal_file

    def with_overrides(self, **overrides: Any) -> TallyConfig:
        """Return a copy with non-None overrides applied (CLI flags win over the file)."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if "log_level" in values:
            values["log_level"] = _coerce_log_level(values["log_level"])
        return replace(self, **values)


def _coerce_log_level(value: Any) -> str:
    level = str(value).strip().upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)} (got {value!r})")
    return level


def load_config(path: Path) -> TallyConfig:
    """
    Load configuration from TOML.

    A relative data_dir is resolved against the directory holding the file.
    """
    import tomllib

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e

    section = data.get("tally", {})
    if not isinstance(section, dict):
        raise ConfigError(f"{path}: [tally] must be a table")

    config = TallyConfig()

    data_dir = section.get("data_dir")
    if data_dir is not None:
        if not isinstance(data_dir, str) or not data_dir.strip():
            raise ConfigError(f"{path}: data_dir must be a non-empty string")
        resolved = Path(data_dir)
        if not resolved.is_absolute():
            resolved = path.parent / resolved
        config = replace(config, data_dir=resolved)
    else:
        config = replace(config, data_dir=path.parent / config.data_dir)

    journal_file = section.get("journal_file", config.journal_file)
    if not isinstance(journal_file, str) or not journal_file.strip():
        raise ConfigError(f"{path}: journal_file must be a non-empty string")

    journal_enabled = section.get("journal_enabled", config.journal_enabled)
    if not isinstance(journal_enabled, bool):
        raise ConfigError(f"{path}: journal_enabled must be true or false")

    return replace(
        config,
        journal_file=journal_file.strip(),
        journal_enabled=journal_enabled,
        log_level=_coerce_log_level(section.get("log_level", config.log_level)),
    )


def find_config(start: Path) -> Path | None:
    """Find tally.toml by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        candidate = p / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def configure_logging(level: str = "WARNING") -> None:
    """Route tally's loggers to stderr through rich."""
    from rich.console import Console
    from rich.logging import RichHandler

    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    logger = logging.getLogger("tally")
    logger.handlers[:] = [handler]
    logger.setLevel(_coerce_log_level(level))
