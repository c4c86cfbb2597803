"""Settings persistence for per-document page setup.

This module provides persistent storage for page settings indexed by document
path. Settings are stored in an OS-appropriate location and survive restarts.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

from .paper import (
    is_valid_colour,
    is_valid_orientation,
    is_valid_paper_margins,
    is_valid_paper_size,
)

logger = logging.getLogger(__name__)


class SettingsPersistence:
    """Manages persistent storage of per-document page settings.

    Settings are stored in a JSON file in the user's config directory,
    keyed by the absolute path of the document being paginated.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self._config_dir = Path(config_dir) if config_dir else Path(platformdirs.user_config_dir("pageflow", "pageflow"))
        self._settings_file = self._config_dir / "settings.json"
        self._settings_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @property
    def settings_file(self) -> Path:
        return self._settings_file

    def _ensure_config_dir(self) -> None:
        try:
            self._config_dir.mkdir(parents=True, exist_ok=True)
        except (OSError, PermissionError) as e:
            logger.warning(f"Could not create config directory {self._config_dir}: {e}")

    def _load_all_settings(self) -> Dict[str, Dict[str, Any]]:
        """Load all settings from disk.

        Returns:
            Dictionary mapping document paths to their settings.
            Returns empty dict if the file doesn't exist or can't be read.
        """
        if self._settings_cache is not None:
            return self._settings_cache

        if not self._settings_file.exists():
            self._settings_cache = {}
            return self._settings_cache

        try:
            with open(self._settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not load settings from {self._settings_file}: {e}")
            self._settings_cache = {}
            return self._settings_cache

        if not isinstance(data, dict):
            logger.warning("Settings file has invalid format (not a dict), ignoring")
            data = {}
        self._settings_cache = data
        return self._settings_cache

    def _save_all_settings(self, settings: Dict[str, Dict[str, Any]]) -> bool:
        """Save all settings to disk atomically (temp file + rename).

        Returns:
            True if the save was successful, False otherwise.
        """
        self._ensure_config_dir()
        temp_file = self._settings_file.with_suffix('.tmp')

        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(settings, f, indent=2)
            temp_file.replace(self._settings_file)
            self._settings_cache = settings
            return True
        except OSError as e:
            logger.warning(f"Could not save settings to {self._settings_file}: {e}")
            try:
                if temp_file.exists():
                    temp_file.unlink()
            except OSError as cleanup_error:
                logger.debug(f"Could not remove {temp_file}: {cleanup_error}")
            return False

    @staticmethod
    def _normalize_path(document_path: str) -> Optional[str]:
        try:
            return os.path.abspath(document_path)
        except (OSError, ValueError):
            logger.warning(f"Invalid document path: {document_path}")
            return None

    def load_settings(self, document_path: Optional[str]) -> Dict[str, Any]:
        """Load settings for a specific document.

        Args:
            document_path: Path to the document. If None, returns an empty dict.

        Returns:
            A copy of the document's settings; empty if none are stored.
        """
        if document_path is None:
            return {}
        abs_path = self._normalize_path(document_path)
        if abs_path is None:
            return {}

        doc_settings = self._load_all_settings().get(abs_path, {})
        if not isinstance(doc_settings, dict):
            logger.warning(f"Settings for {abs_path} are not a dict, ignoring")
            return {}
        return doc_settings.copy()

    def save_settings(self, document_path: Optional[str], settings: Dict[str, Any]) -> bool:
        """Save settings for a specific document.

        Invalid values are dropped with a warning before saving.

        Returns:
            True if the save was successful, False otherwise.
        """
        if document_path is None:
            return False
        abs_path = self._normalize_path(document_path)
        if abs_path is None:
            return False

        valid = {}
        for key, value in settings.items():
            if self.validate_setting(key, value):
                valid[key] = value
            else:
                logger.warning(f"Dropping invalid setting {key}={value!r}")

        all_settings = dict(self._load_all_settings())
        all_settings[abs_path] = valid
        return self._save_all_settings(all_settings)

    def validate_setting(self, key: str, value: Any) -> bool:
        """Validate a setting value.

        Unknown keys are accepted for forward compatibility.
        """
        if value is None:
            return True  # means "not set"

        if key == 'paper_size':
            return is_valid_paper_size(value)
        if key == 'paper_orientation':
            return is_valid_orientation(value)
        if key == 'paper_colour':
            return is_valid_colour(value)
        if key == 'page_margins':
            return is_valid_paper_margins(value)
        if key == 'font_name':
            return isinstance(value, str) and bool(value)
        if key == 'font_size':
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False
            return 4 <= value <= 96
        return True

    def clear_cache(self) -> None:
        """Clear the in-memory cache of settings."""
        self._settings_cache = None


# Global instance
_persistence: Optional[SettingsPersistence] = None


def get_persistence() -> SettingsPersistence:
    """Get the global settings persistence instance."""
    global _persistence
    if _persistence is None:
        _persistence = SettingsPersistence()
    return _persistence
