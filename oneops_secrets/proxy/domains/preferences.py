"""Preferences manager for the OneOps Secrets CLI.

Manages persistent user preferences and the login session stored in XDG
Base Directory standard location:
~/.config/oneops-secrets/preferences.json

The file holds the bearer token after 'secrets login', so it is only
readable by its owner.
"""
import json
import os
from pathlib import Path
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

PREFERENCES_DIR = Path.home() / ".config" / "oneops-secrets"
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"


def _ensure_preferences_dir() -> None:
    """Create preferences directory if it doesn't exist."""
    try:
        PREFERENCES_DIR.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Failed to create preferences directory {PREFERENCES_DIR}: {e}")
        raise


def _load_preferences() -> Dict[str, Any]:
    """
    Load preferences from JSON file.

    Returns:
        Dictionary of preferences, or empty dict if file doesn't exist
    """
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        with open(PREFERENCES_FILE, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse preferences file {PREFERENCES_FILE}: {e}")
        return {}
    except OSError as e:
        logger.error(f"Failed to read preferences file {PREFERENCES_FILE}: {e}")
        return {}


def _save_preferences(preferences: Dict[str, Any]) -> None:
    """
    Save preferences to JSON file with owner-only permissions.

    Args:
        preferences: Dictionary of preferences to save
    """
    _ensure_preferences_dir()

    try:
        fd = os.open(PREFERENCES_FILE, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'w') as f:
            json.dump(preferences, f, indent=2)
        os.chmod(PREFERENCES_FILE, 0o600)
    except OSError as e:
        logger.error(f"Failed to save preferences to {PREFERENCES_FILE}: {e}")
        raise


def get_preference(key: str) -> Optional[str]:
    """
    Get preference value by key.

    Args:
        key: Preference key

    Returns:
        Preference value if found, None otherwise
    """
    preferences = _load_preferences()
    return preferences.get(key)


def set_preference(key: str, value: str, secret: bool = False) -> None:
    """
    Set preference value.

    Args:
        key: Preference key
        value: Preference value
        secret: Don't echo the value to the log (tokens)
    """
    preferences = _load_preferences()
    preferences[key] = value
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' set to: {'******' if secret else value}")


def clear_preference(key: str) -> None:
    """
    Clear/remove preference by key.

    Args:
        key: Preference key to remove
    """
    preferences = _load_preferences()
    if key in preferences:
        del preferences[key]
        _save_preferences(preferences)
        logger.info(f"Preference '{key}' cleared")
    else:
        logger.debug(f"Preference '{key}' not found, nothing to clear")
