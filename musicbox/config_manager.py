"""
Runtime configuration for musicbox.

Provides access to configuration values with defaults and type conversion.
Values live in memory and can be edited while the app runs; nothing is
written to disk. The CONFIG_SCHEMA provides metadata for configuration UIs.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_API_BASE_URL = "https://tidal.401658.xyz"

# Configuration groups define the logical sections in the config UI
CONFIG_GROUPS = {
    "catalog": {"label": "Catalog API", "order": 1},
    "playback": {"label": "Playback", "order": 2},
    "library": {"label": "Local Files", "order": 3},
}

# Schema defining metadata for each editable configuration key
CONFIG_SCHEMA = {
    "api_base_url": {
        "group": "catalog",
        "label": "Base API URL",
        "description": "Root URL of the catalog backend used for search and stream lookup.",
        "control": "text",
        "placeholder": DEFAULT_API_BASE_URL,
    },
    "resolve_endpoint": {
        "group": "catalog",
        "label": "Stream Lookup Endpoint",
        "description": "Backend path used to exchange a track id for a stream URL.",
        "control": "select",
        "options": [
            {"value": "song", "label": "/song/ (single object)"},
            {"value": "track", "label": "/track/ (array response)"},
        ],
    },
    "default_quality": {
        "group": "catalog",
        "label": "Stream Quality",
        "description": "Quality tier requested when a track does not carry its own.",
        "control": "select",
        "options": [
            {"value": "LOW", "label": "Low"},
            {"value": "HIGH", "label": "High"},
            {"value": "LOSSLESS", "label": "Lossless"},
            {"value": "HI_RES", "label": "Hi-Res"},
        ],
    },
    "http_timeout_seconds": {
        "group": "catalog",
        "label": "Request Timeout",
        "description": "Seconds to wait for the catalog backend before giving up.",
        "control": "slider",
        "min": 1,
        "max": 60,
        "step": 1,
        "display_format": "seconds",
    },
    "audio_sink": {
        "group": "playback",
        "label": "Audio Output",
        "description": "GStreamer sink element used for playback.",
        "control": "text",
        "placeholder": "autoaudiosink",
    },
    "local_music_directory": {
        "group": "library",
        "label": "Music Directory",
        "description": "Folder offered by the local file picker.",
        "control": "text",
        "placeholder": "~/Music",
    },
}


class ConfigManager:
    """Manages runtime-editable configuration held in memory."""

    DEFAULTS = {
        "api_base_url": DEFAULT_API_BASE_URL,
        "resolve_endpoint": "song",
        "default_quality": "HI_RES",
        "http_timeout_seconds": "15",
        "audio_sink": "autoaudiosink",
        "local_music_directory": str(Path.home() / "Music"),
    }

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize ConfigManager.

        Args:
            overrides: Initial values that replace the defaults (e.g. from the CLI)
        """
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._values: Dict[str, str] = {}
        for key, value in (overrides or {}).items():
            if value is not None:
                self.set(key, value)

    def get(self, key: str, default: Any = None) -> Optional[str]:
        """
        Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if not found (uses DEFAULTS if None)

        Returns:
            Configuration value as string, or None if not found
        """
        if default is None:
            default = self.DEFAULTS.get(key)

        with self._lock:
            value = self._values.get(key)
        return value if value else default

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        """Get configuration value as integer."""
        value = self.get(key)
        if value is None or value == "":
            return default
        try:
            return int(value)
        except ValueError:
            self.logger.warning("Invalid integer value for %s: %s", key, value)
            return default

    def get_float(self, key: str, default: Optional[float] = None) -> Optional[float]:
        """Get configuration value as float."""
        value = self.get(key)
        if value is None or value == "":
            return default
        try:
            return float(value)
        except ValueError:
            self.logger.warning("Invalid float value for %s: %s", key, value)
            return default

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        """Get configuration value as boolean."""
        value = self.get(key)
        if value is None or value == "":
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def set(self, key: str, value: Any) -> bool:
        """
        Set a configuration value.

        Args:
            key: Configuration key
            value: Value to set (will be converted to string and stripped)

        Returns:
            True if successful
        """
        with self._lock:
            self._values[key] = str(value).strip()
        self.logger.info("Config updated: %s", key)
        return True

    def get_all(self) -> dict:
        """Get all configuration values merged over the defaults."""
        result = self.DEFAULTS.copy()
        with self._lock:
            result.update({k: v for k, v in self._values.items() if v})
        return result

    def get_config_schema(self) -> Dict[str, dict]:
        """Get the configuration schema (copied so callers can't mutate it)."""
        return {key: dict(key_def) for key, key_def in CONFIG_SCHEMA.items()}

    def get_config_groups(self) -> Dict[str, dict]:
        """Get the configuration group definitions."""
        return CONFIG_GROUPS.copy()

    def get_full_config(self) -> dict:
        """
        Get complete configuration data for the UI.

        Returns:
            Dictionary with 'values', 'schema', and 'groups' keys.
        """
        return {
            "values": self.get_all(),
            "schema": self.get_config_schema(),
            "groups": self.get_config_groups(),
        }
