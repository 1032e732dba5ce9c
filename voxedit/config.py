"""
Configuration management with immutable snapshots.

Loads from: environment variables > settings.json > defaults
The engine only ever sees ConfigSnapshot copies, so a settings change
takes effect between deltas, never halfway through one.
"""

import json
import os
from pathlib import Path
from typing import List, Optional, Tuple

from .types import ConfigSnapshot


# Defaults
DEFAULT_CONFIG = {
    "enabled": True,
    "trigger_prefix": "",
    "require_prefix": False,
    "confidence_threshold": 0.8,

    # Engine tuning
    "history_depth": 10,
    "lookback_words": 8,
    "prefix_window": 3,
    "scorer": "edit_distance",

    # Structured event log
    "metrics_enabled": False,
}

# Environment overrides: VAR -> setting
ENV_OVERRIDES = {
    "VOXEDIT_ENABLED": "enabled",
    "VOXEDIT_TRIGGER_PREFIX": "trigger_prefix",
    "VOXEDIT_REQUIRE_PREFIX": "require_prefix",
    "VOXEDIT_CONFIDENCE_THRESHOLD": "confidence_threshold",
    "VOXEDIT_HISTORY_DEPTH": "history_depth",
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}


def _coerce(value, default):
    """Convert a raw settings/env value to the type of its default."""
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_STRINGS
        return bool(value)
    if value is None:
        return default
    return type(default)(value)


class Config:
    """
    Single source of truth for engine settings.

    Usage:
        config = Config.load()
        snapshot = config.snapshot()  # Immutable copy for the engine
    """

    def __init__(self, settings_file: Optional[Path] = None):
        self.enabled: bool = True
        self.trigger_prefix: str = ""
        self.require_prefix: bool = False
        self.confidence_threshold: float = 0.8

        # Engine tuning
        self.history_depth: int = 10
        self.lookback_words: int = 8
        self.prefix_window: int = 3
        self.scorer: str = "edit_distance"

        # User-defined commands: [(trigger, command type name), ...]
        self.custom_commands: List[Tuple[str, str]] = []

        # Paths
        self.data_dir: Path = Path.home() / ".voxedit"
        self.settings_file: Path = Path(settings_file) if settings_file else self.data_dir / "settings.json"
        self.metrics_file: Path = self.data_dir / "events.jsonl"

        # Structured event log
        self.metrics_enabled: bool = False

    @classmethod
    def load(cls, settings_file: Optional[Path] = None) -> "Config":
        """Load configuration from all sources."""
        config = cls(settings_file)
        if config.settings_file.exists():
            config._apply_settings_file(config.settings_file)
        config._load_env()
        config._validate()
        return config

    def _apply_settings_file(self, settings_file: Path) -> None:
        """Apply settings from a JSON file. Bad files are reported and skipped."""
        try:
            with open(settings_file) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"[Config] Error loading {settings_file}: {e}")
            return

        if not isinstance(data, dict):
            print(f"[Config] Ignoring {settings_file}: expected a JSON object")
            return

        # Older files used the plugin's field names
        key_mapping = {
            "command_prefix": "trigger_prefix",
            "sensitivity": "confidence_threshold",
        }
        for old_key, new_key in key_mapping.items():
            if old_key in data and new_key not in data:
                data[new_key] = data[old_key]

        for key, default in DEFAULT_CONFIG.items():
            if key not in data:
                continue
            try:
                setattr(self, key, _coerce(data[key], default))
            except (TypeError, ValueError) as e:
                print(f"[Config] Invalid value for {key}: {data[key]!r} ({e})")

        self.custom_commands = self._parse_custom_commands(data.get("custom_commands", []))

    @staticmethod
    def _parse_custom_commands(raw) -> List[Tuple[str, str]]:
        """
        Accept [["trigger", "command"], ...] or {"trigger": "command", ...}.
        Malformed entries are skipped.
        """
        if isinstance(raw, dict):
            raw = list(raw.items())
        if not isinstance(raw, list):
            print("[Config] Ignoring custom_commands: expected a list or object")
            return []

        commands = []
        for item in raw:
            if (isinstance(item, (list, tuple)) and len(item) == 2
                    and all(isinstance(part, str) for part in item)):
                commands.append((item[0], item[1]))
            else:
                print(f"[Config] Skipping malformed custom command: {item!r}")
        return commands

    def _load_env(self) -> None:
        """Environment variables override file values."""
        for var, key in ENV_OVERRIDES.items():
            value = os.getenv(var)
            if value is None:
                continue
            try:
                setattr(self, key, _coerce(value, DEFAULT_CONFIG[key]))
            except ValueError:
                print(f"[Config] Invalid {var}={value!r}, keeping {getattr(self, key)!r}")

    def _validate(self) -> None:
        """Clamp numeric settings into their valid ranges."""
        self.confidence_threshold = min(1.0, max(0.0, self.confidence_threshold))
        self.history_depth = max(1, self.history_depth)
        self.lookback_words = max(0, self.lookback_words)
        self.prefix_window = max(1, self.prefix_window)
        self.trigger_prefix = self.trigger_prefix.strip()

    def save_settings(self) -> None:
        """Save current settings to settings.json."""
        data = {key: getattr(self, key) for key in DEFAULT_CONFIG}
        data["custom_commands"] = [list(item) for item in self.custom_commands]

        self.settings_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.settings_file, "w") as f:
            json.dump(data, f, indent=2)

    def snapshot(self) -> ConfigSnapshot:
        """Return immutable copy for the engine."""
        self._validate()
        return ConfigSnapshot(
            enabled=self.enabled,
            trigger_prefix=self.trigger_prefix or None,
            require_prefix=self.require_prefix,
            confidence_threshold=self.confidence_threshold,
            history_depth=self.history_depth,
            lookback_words=self.lookback_words,
            prefix_window=self.prefix_window,
            scorer=self.scorer,
            custom_commands=tuple(self.custom_commands),
            metrics_enabled=self.metrics_enabled,
        )
