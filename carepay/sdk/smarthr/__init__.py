"""smarthr - SmartHR employee directory sync.

Scope:
- API client with pagination and typed errors (client.py)
- Token obfuscation for profile.yaml (token.py)
- Department -> office, custom field -> qualification resolution
- Employment-type scope filter
- Sync preview generation and application (sync.py)

Constraints:
- Resolvers and sync functions are pure: they take registry snapshots and
  return new data, never mutating inputs or doing I/O
- Unresolvable employees are reported as data (skipped / status change),
  not raised

Usage:
    from carepay.sdk.smarthr import SmartHRClient, generate_sync_preview

    crews = SmartHRClient(subdomain, token).get_all_crews()
    preview = generate_sync_preview(crews, ...)
"""

from .client import SmartHRApiError, SmartHRClient
from .departments import DepartmentResolution, build_department_index, resolve_department
from .employment import is_included
from .qualifications import resolve_qualifications
from .schemas import Crew, DepartmentRef, EmploymentTypeRef, normalize_department, normalize_employment_type
from .sync import (
    AUTO_REVISION_MEMO,
    DEFAULT_BASE_SALARY,
    apply_sync_preview,
    generate_sync_preview,
)
from .token import deobfuscate_token, obfuscate_token

__all__ = [
    # Client
    "SmartHRApiError",
    "SmartHRClient",
    # Resolvers
    "DepartmentResolution",
    "build_department_index",
    "resolve_department",
    "is_included",
    "resolve_qualifications",
    # External schemas
    "Crew",
    "DepartmentRef",
    "EmploymentTypeRef",
    "normalize_department",
    "normalize_employment_type",
    # Sync
    "AUTO_REVISION_MEMO",
    "DEFAULT_BASE_SALARY",
    "apply_sync_preview",
    "generate_sync_preview",
    # Token
    "deobfuscate_token",
    "obfuscate_token",
]
