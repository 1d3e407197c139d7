"""
Initializes the Dynaconf settings object for the archive_uploader component.
This module is the single source of truth for all configuration.
"""

from pathlib import Path
from dynaconf import Dynaconf

PROJECT_ROOT = Path(__file__).parent.parent

settings = Dynaconf(
    root_path=PROJECT_ROOT,
    settings_files=["config/settings.toml"],
    secrets=["config/.secrets.toml"],
    envvar_prefix="ARCHIVE_UPLOADER",
)


def settings_dict() -> dict:
    """Returns the settings with lower-case top-level keys."""
    return {key.lower(): value for key, value in settings.as_dict().items()}
