"""Settings loader: reads ledger_settings.json, then applies env overrides.

Resolution order (later wins):
1. ``<config_dir>/ledger_settings.json``
2. ``.env`` at the project root (via python-dotenv; never overrides
   variables already set in the process environment)
3. ``GIGLEDGER_DATA_DIR`` / ``GIGLEDGER_LOG_LEVEL``

Relative paths in the JSON file resolve against the project root.
Unknown keys and unknown log levels fail loud.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_DIR = ROOT / "config"
SETTINGS_FILE = "ledger_settings.json"

ENV_DATA_DIR = "GIGLEDGER_DATA_DIR"
ENV_LOG_LEVEL = "GIGLEDGER_LOG_LEVEL"

_KNOWN_KEYS = {"version", "data_dir", "state_file", "event_log_file", "log_level"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class LedgerSettings:
    """Resolved runtime settings for a ledger host."""
    data_dir: Path
    state_file: str = "ledger_state.json"
    event_log_file: str = "events.jsonl"
    log_level: str = "INFO"

    @property
    def state_path(self) -> Path:
        return self.data_dir / self.state_file

    @property
    def event_log_path(self) -> Path:
        return self.data_dir / self.event_log_file

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path = ROOT) -> LedgerSettings:
        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            raise ValueError(f"Unknown settings keys: {', '.join(sorted(unknown))}")
        if "version" not in data:
            raise ValueError(f"{SETTINGS_FILE} missing version")

        data_dir = Path(data.get("data_dir", "data"))
        if not data_dir.is_absolute():
            data_dir = base_dir / data_dir

        settings = cls(
            data_dir=data_dir,
            state_file=data.get("state_file", "ledger_state.json"),
            event_log_file=data.get("event_log_file", "events.jsonl"),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )
        settings._validate()
        return settings

    @classmethod
    def from_config_dir(
        cls,
        config_dir: Path = DEFAULT_CONFIG_DIR,
        environ: Optional[Mapping[str, str]] = None,
    ) -> LedgerSettings:
        """Load settings from the config directory plus the environment.

        Pass ``environ`` explicitly to bypass ``.env`` loading (tests).
        """
        with (config_dir / SETTINGS_FILE).open("r", encoding="utf-8") as f:
            settings = cls.from_dict(json.load(f))

        if environ is None:
            load_dotenv(ROOT / ".env")
            environ = os.environ
        return settings.with_overrides(environ)

    def with_overrides(self, environ: Mapping[str, str]) -> LedgerSettings:
        """Apply GIGLEDGER_* environment overrides."""
        settings = self
        if environ.get(ENV_DATA_DIR):
            settings = replace(settings, data_dir=Path(environ[ENV_DATA_DIR]))
        if environ.get(ENV_LOG_LEVEL):
            settings = replace(settings, log_level=environ[ENV_LOG_LEVEL].upper())
        settings._validate()
        return settings

    def _validate(self) -> None:
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(
                f"Invalid log level {self.log_level!r}; "
                f"expected one of {', '.join(sorted(_LOG_LEVELS))}"
            )
        if not self.state_file or not self.event_log_file:
            raise ValueError("state_file and event_log_file must be non-empty")
