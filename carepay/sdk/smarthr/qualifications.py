"""Map SmartHR custom fields to qualification masters.

Two independent sources contribute qualification ids:

- Qualification name fields ("資格①".."資格⑧", "Qualification 1", ...):
  the value (enum element or free text) is matched against the masters of
  the office's business type, by name first and then by external_code.
- Manual QualificationMapping rows keyed by custom field template id and
  optionally a value id.

Fields that resolve to nothing are ignored; unmapped custom fields are
common and must not block a sync.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from ..schemas import BusinessType, QualificationMapping, QualificationMaster
from .schemas import Crew, CustomField, NamedRef

logger = logging.getLogger(__name__)

QUALIFICATION_FIELD_PREFIXES = ("資格", "qualification")
EXCLUDED_FIELD_KEYWORDS = ("証憑", "取得日", "満了日", "更新")
EXCLUDED_WORD_PREFIXES = ("certificat", "date", "expir", "renew", "acquired")


def is_qualification_name_field(name: str) -> bool:
    """Whether a custom field holds a qualification name.

    Attachments and acquisition/expiry/renewal dates of a qualification
    share the prefix but are not names.
    """
    lowered = name.strip().lower()
    if not lowered.startswith(QUALIFICATION_FIELD_PREFIXES):
        return False
    if any(keyword in lowered for keyword in EXCLUDED_FIELD_KEYWORDS):
        return False
    words = re.split(r"[^a-z]+", lowered)
    return not any(word.startswith(EXCLUDED_WORD_PREFIXES) for word in words if word)


def extract_code_and_name(value) -> Tuple[Optional[str], Optional[str]]:
    """(code, display_name) of a custom field value.

    Enum elements give (id, name); a plain string could be either, so it
    is used for both.
    """
    if isinstance(value, NamedRef):
        return value.id or None, value.name or None
    if isinstance(value, dict):
        return value.get("id") or None, value.get("name") or None
    if isinstance(value, str) and value:
        return value, value
    return None, None


def match_master(
    code: Optional[str],
    name: Optional[str],
    masters: Sequence[QualificationMaster],
    code_hints: Optional[Dict[str, str]] = None,
) -> Optional[QualificationMaster]:
    """Find the master for a (code, name) pair: exact name first, then external code."""
    candidates = [c for c in (name, code) if c]
    if code_hints and code and code in code_hints:
        candidates.append(code_hints[code])

    for master in masters:
        if master.name in candidates:
            return master
    for master in masters:
        if master.external_code and master.external_code in candidates:
            return master
    return None


def _mapping_matches(mapping: QualificationMapping, field: CustomField) -> bool:
    if mapping.external_field_id != field.template_id:
        return False
    if mapping.external_value_id is None:
        return field.has_value
    if isinstance(field.value, NamedRef):
        return field.value.id == mapping.external_value_id
    if isinstance(field.value, str):
        return field.value == mapping.external_value_id
    return False


def resolve_qualifications(
    crew: Crew,
    masters: Sequence[QualificationMaster],
    manual_mappings: Sequence[QualificationMapping] = (),
    business_type: Optional[BusinessType] = None,
    code_hints: Optional[Dict[str, str]] = None,
) -> List[str]:
    """Qualification ids for a crew, in custom field order, without duplicates.

    Args:
        crew: SmartHR crew
        masters: Qualification masters of the target office's business type
        manual_mappings: Manual mappings (filtered to business_type if given)
        business_type: Business type of the target office
        code_hints: Optional SmartHR code -> qualification name hints

    Returns:
        List of qualification master ids
    """
    qualification_ids: List[str] = []
    master_ids = {m.id for m in masters}
    mappings = [
        m for m in manual_mappings
        if business_type is None or m.business_type == business_type
    ]

    def add(qual_id: str) -> None:
        if qual_id not in qualification_ids:
            qualification_ids.append(qual_id)

    for field in crew.custom_fields:
        field_name = field.field_name

        if is_qualification_name_field(field_name):
            code, name = extract_code_and_name(field.value)
            if code or name:
                master = match_master(code, name, masters, code_hints)
                if master:
                    add(master.id)
                else:
                    logger.debug(
                        f"{crew.display_name}: '{field_name}' value '{code or name}' matches no "
                        f"qualification; register it as the master's external code"
                    )

        for mapping in mappings:
            if _mapping_matches(mapping, field) and mapping.qualification_id in master_ids:
                add(mapping.qualification_id)

    return qualification_ids
