"""Configuration management for carepay.

Configuration is split into two files:

1. settings.json - Machine-specific settings
   - data_dir: where registry.json lives (optional)
   - profile: path to profile.yaml (optional, if not colocated)

2. profile.yaml - Organization configuration
   - smarthr: subdomain, obfuscated access token, employment type filter,
     last sync time

Config directory resolution:
1. CAREPAY_CONFIG_PATH environment variable (if set)
2. ~/.config/carepay/ (XDG_CONFIG_HOME fallback)

Data directory resolution:
1. settings.json "data_dir" key
2. XDG_DATA_HOME/carepay/ or ~/.local/share/carepay/

Access token resolution:
1. CAREPAY_SMARTHR_TOKEN environment variable
2. profile.yaml smarthr.access_token (obfuscated, see smarthr.token)
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .smarthr.token import deobfuscate_token, obfuscate_token


APP_NAME = "carepay"
SETTINGS_FILENAME = "settings.json"
PROFILE_FILENAME = "profile.yaml"
TOKEN_ENV_VAR = "CAREPAY_SMARTHR_TOKEN"


class ProfileNotFoundError(Exception):
    """Raised when no profile is found."""
    pass


class SmartHRNotConfiguredError(Exception):
    """Raised when SmartHR connection settings are incomplete."""
    pass


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Resolution order:
    1. CAREPAY_CONFIG_PATH environment variable
    2. ~/.config/carepay/ (XDG_CONFIG_HOME)

    Returns:
        Path to the configuration directory
    """
    env_path = os.environ.get("CAREPAY_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg_config_home) / APP_NAME


def get_settings_path() -> Path:
    """Get the path to settings.json (may not exist yet)."""
    return get_config_dir() / SETTINGS_FILENAME


def load_settings() -> dict:
    """Load machine-specific settings from settings.json.

    Returns:
        Settings dictionary (empty dict if file doesn't exist)
    """
    settings_file = get_settings_path()

    if not settings_file.exists():
        return {}

    with open(settings_file, "r") as f:
        return json.load(f)


def save_settings(settings: dict) -> Path:
    """Save machine-specific settings to settings.json.

    Returns:
        Path to the saved settings file
    """
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    settings_file = config_dir / SETTINGS_FILENAME

    with open(settings_file, "w") as f:
        json.dump(settings, f, indent=2)

    return settings_file


def get_setting(key: str, default: Any = None) -> Any:
    """Get a setting value from settings.json."""
    return load_settings().get(key, default)


def set_setting(key: str, value: Any) -> Path:
    """Set a setting value in settings.json."""
    settings = load_settings()
    settings[key] = value
    return save_settings(settings)


def get_profile_path(require_exists: bool = False) -> Path:
    """Get the path to the profile.yaml file.

    Resolution order:
    1. settings.json "profile" key (if set)
    2. profile.yaml in config directory

    Raises:
        ProfileNotFoundError: If require_exists=True and no profile found
    """
    custom_profile = load_settings().get("profile")
    profile_path = Path(custom_profile) if custom_profile else get_config_dir() / PROFILE_FILENAME

    if require_exists and not profile_path.exists():
        raise ProfileNotFoundError(
            f"No profile found at {profile_path}\n\n"
            f"Configure SmartHR with: carepay smarthr configure --subdomain <name>"
        )
    return profile_path


def load_profile(require_exists: bool = True) -> dict:
    """Load profile.yaml.

    Returns:
        Profile dictionary (empty dict if not required and not found)

    Raises:
        ProfileNotFoundError: If require_exists=True and no profile found
    """
    profile_path = get_profile_path(require_exists=require_exists)

    if not profile_path.exists():
        return {}

    with open(profile_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def save_profile(profile: dict, path: Optional[Path] = None) -> Path:
    """Save profile.yaml.

    Returns:
        Path to the saved profile file
    """
    if path is None:
        path = get_profile_path(require_exists=False)

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(profile, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    return path


def get_data_path() -> Path:
    """Get the data directory path.

    Returns:
        settings.json data_dir if set, else XDG_DATA_HOME/carepay/
        (created if doesn't exist)
    """
    custom = get_setting("data_dir")
    if custom:
        data_path = Path(custom).expanduser()
    else:
        xdg_data_home = os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share")
        data_path = Path(xdg_data_home) / APP_NAME
    data_path.mkdir(parents=True, exist_ok=True)
    return data_path


# =============================================================================
# SmartHR connection settings (profile.yaml 'smarthr' section)
# =============================================================================


class SmartHRSettings(BaseModel):
    """SmartHR connection settings as stored in profile.yaml.

    access_token holds the obfuscated token, never the plain one.
    """

    model_config = ConfigDict(extra="forbid")

    subdomain: str = Field(default="", description="Tenant subdomain ({subdomain}.smarthr.jp)")
    access_token: str = Field(default="", description="Obfuscated access token")
    store_token: bool = Field(default=True, description="Persist the token in profile.yaml")
    employment_type_filter: List[str] = Field(
        default_factory=list, description="Employment type ids/names in sync scope (empty = all)"
    )
    last_synced_at: Optional[datetime] = None


def load_smarthr_settings() -> SmartHRSettings:
    """Load the smarthr section of profile.yaml (defaults if absent)."""
    profile = load_profile(require_exists=False)
    return SmartHRSettings.model_validate(profile.get("smarthr") or {})


def save_smarthr_settings(settings: SmartHRSettings) -> Path:
    """Write the smarthr section of profile.yaml, keeping other sections."""
    profile = load_profile(require_exists=False)
    profile["smarthr"] = settings.model_dump(mode="json")
    return save_profile(profile)


def store_access_token(settings: SmartHRSettings, token: str) -> SmartHRSettings:
    """Return settings with the token obfuscated, or cleared if store_token is off."""
    stored = obfuscate_token(token) if settings.store_token and token else ""
    return settings.model_copy(update={"access_token": stored})


def resolve_access_token(settings: Optional[SmartHRSettings] = None) -> str:
    """Plain access token from the environment or profile ("" if none)."""
    env_token = os.environ.get(TOKEN_ENV_VAR)
    if env_token:
        return env_token
    settings = settings or load_smarthr_settings()
    if not settings.access_token:
        return ""
    return deobfuscate_token(settings.access_token)


def require_smarthr_connection(settings: Optional[SmartHRSettings] = None) -> tuple:
    """(subdomain, token) for the SmartHR client.

    Raises:
        SmartHRNotConfiguredError: If the subdomain or a usable token is missing
    """
    settings = settings or load_smarthr_settings()
    token = resolve_access_token(settings)
    missing = []
    if not settings.subdomain:
        missing.append("subdomain (carepay smarthr configure --subdomain <name>)")
    if not token:
        missing.append(f"access token (carepay smarthr configure --token, or {TOKEN_ENV_VAR})")
    if missing:
        missing_str = "\n  - ".join(missing)
        raise SmartHRNotConfiguredError(
            f"SmartHR connection is not configured.\n\nMissing:\n  - {missing_str}"
        )
    return settings.subdomain, token
