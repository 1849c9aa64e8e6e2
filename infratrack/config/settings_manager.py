"""
Settings Manager for InfraTrack

Manages persistent user overrides for the projection zone and the audit
tolerances. Stored as JSON at: ~/.infratrack/settings.json

Example file:
    {
      "version": "1.0",
      "format": "infratrack_settings",
      "projection": {"utm_zone": 38, "northern_hemisphere": true},
      "audit": {"connection_tolerance_m": 0.5}
    }
"""

import json
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional
import logging

from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Default settings location
DEFAULT_SETTINGS_DIR = Path.home() / ".infratrack"
SETTINGS_FILE = DEFAULT_SETTINGS_DIR / "settings.json"

SETTINGS_FORMAT = "infratrack_settings"


class SettingsManager:
    """
    Manages persistent settings overrides.

    Only the projection and audit sections are persisted; field aliases stay
    in code.
    """

    def __init__(self, settings_file: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            settings_file: Optional custom settings file path (defaults to ~/.infratrack/settings.json)
        """
        self.settings_file = Path(settings_file) if settings_file else SETTINGS_FILE
        self.settings_dir = self.settings_file.parent

    def save(self, settings: Optional[Settings] = None) -> bool:
        """
        Save the projection and audit sections to JSON.

        Returns:
            True if save successful, False otherwise
        """
        settings = settings or get_settings()
        payload = {
            "version": "1.0",
            "format": SETTINGS_FORMAT,
            "projection": asdict(settings.projection),
            "audit": asdict(settings.audit),
        }

        try:
            self.settings_dir.mkdir(parents=True, exist_ok=True)
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            logger.info(f"Settings saved successfully to {self.settings_file}")
            return True
        except OSError as e:
            logger.error(f"Failed to save settings: {e}")
            return False

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Load the raw overrides dictionary.

        Returns:
            Settings dictionary if the file exists and is valid, None otherwise
        """
        if not self.settings_file.exists():
            logger.info("Settings file does not exist - using defaults")
            return None

        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse settings file (invalid JSON): {e}")
            return None
        except OSError as e:
            logger.error(f"Failed to load settings: {e}")
            return None

        if not isinstance(data, dict) or data.get("format") != SETTINGS_FORMAT:
            logger.warning("Invalid settings file format - using defaults")
            return None

        logger.info(f"Settings loaded successfully from {self.settings_file}")
        return data

    def apply_to(self, settings: Optional[Settings] = None) -> Settings:
        """
        Apply stored overrides onto a Settings instance.

        Unknown keys are ignored with a warning.
        """
        settings = settings or get_settings()
        data = self.load()
        if not data:
            return settings

        if isinstance(data.get("projection"), dict):
            settings.projection = _merge(settings.projection, data["projection"])
        if isinstance(data.get("audit"), dict):
            settings.audit = _merge(settings.audit, data["audit"])
        return settings

    def reset_to_defaults(self) -> bool:
        """
        Delete the settings file to revert to the built-in defaults.

        Returns:
            True if reset successful (or file didn't exist), False otherwise
        """
        try:
            if self.settings_file.exists():
                self.settings_file.unlink()
                logger.info("Settings reset to defaults")
            return True
        except OSError as e:
            logger.error(f"Failed to reset settings: {e}")
            return False

    def get_settings_info(self) -> Dict[str, Any]:
        """Information about the settings file."""
        return {
            "settings_file": str(self.settings_file),
            "file_exists": self.settings_file.exists(),
            "using_defaults": not self.settings_file.exists(),
        }


def _merge(section, overrides: Dict[str, Any]):
    known = {f.name for f in fields(section)}
    for key in overrides:
        if key not in known:
            logger.warning(f"Ignoring unknown setting '{key}' for {type(section).__name__}")
    return replace(section, **{k: v for k, v in overrides.items() if k in known})


# Module-level singleton instance
_settings_manager_instance: Optional[SettingsManager] = None


def get_settings_manager() -> SettingsManager:
    """
    Get the global settings manager instance (singleton pattern).

    Returns:
        SettingsManager instance
    """
    global _settings_manager_instance
    if _settings_manager_instance is None:
        _settings_manager_instance = SettingsManager()
    return _settings_manager_instance
