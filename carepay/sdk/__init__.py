"""carepay SDK - Core functionality for staff records and SmartHR sync."""

from .config import (
    get_config_dir,
    get_settings_path,
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    get_profile_path,
    load_profile,
    save_profile,
    get_data_path,
    ProfileNotFoundError,
    SmartHRNotConfiguredError,
    SmartHRSettings,
    load_smarthr_settings,
    save_smarthr_settings,
    store_access_token,
    resolve_access_token,
    require_smarthr_connection,
)

from .registry import (
    Registry,
    RegistryError,
    StaffNotFoundError,
    get_registry_path,
    load_registry,
    save_registry,
    replace_staff,
    replace_staff_record,
)

from .qualifications import (
    select_primary_qualification,
    primary_allowance,
)

from . import comp
from . import smarthr

__all__ = [
    # Config
    "get_config_dir",
    "get_settings_path",
    "load_settings",
    "save_settings",
    "get_setting",
    "set_setting",
    "get_profile_path",
    "load_profile",
    "save_profile",
    "get_data_path",
    "ProfileNotFoundError",
    "SmartHRNotConfiguredError",
    "SmartHRSettings",
    "load_smarthr_settings",
    "save_smarthr_settings",
    "store_access_token",
    "resolve_access_token",
    "require_smarthr_connection",
    # Registry
    "Registry",
    "RegistryError",
    "StaffNotFoundError",
    "get_registry_path",
    "load_registry",
    "save_registry",
    "replace_staff",
    "replace_staff_record",
    # Qualifications
    "select_primary_qualification",
    "primary_allowance",
    # Submodules
    "comp",
    "smarthr",
]
