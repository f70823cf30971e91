"""
Display formatters for search-result tables.

Each `to_search_display_*` function folds a list of one FHIR datatype (as
JSON dicts) into a single display string. None or an empty list gives "".
"""
from typing import Any, Dict, List, Optional

# Status filter choices offered on conformance-resource search pages
SEARCH_PUBLISHING_STATUSES = [
    "active,draft",
    "active",
    "draft",
    "retired",
]

def _append(result: str, text: str, separator: str = ", ") -> str:
    return f"{result}{separator}{text}" if result else text

def to_search_display_use_context(data: Optional[List[Dict[str, Any]]]) -> str:
    """UsageContext: only contexts with a valueCodeableConcept contribute."""
    result = ""
    for item in data or []:
        if item.get("valueCodeableConcept"):
            result = _append(result, to_search_display_codeable_concept([item["valueCodeableConcept"]]))
    return result

def to_search_display_codeable_concept(data: Optional[List[Dict[str, Any]]]) -> str:
    """CodeableConcept: `text` when present, else the codings' display."""
    result = ""
    for item in data or []:
        if item.get("text"):
            result = _append(result, item["text"])
        elif item.get("coding"):
            text = to_search_display_coding(item["coding"])
            if text:
                result = _append(result, text)
    return result

def to_search_display_coding(data: Optional[List[Dict[str, Any]]]) -> str:
    """Coding: `display` when present, else `code`."""
    result = ""
    for coding in data or []:
        text = coding.get("display") or coding.get("code")
        if text:
            result = _append(result, text)
    return result

def to_search_display_address(data: Optional[List[Dict[str, Any]]]) -> str:
    """
    Address: `text` when present, else line(s), city, state, postalCode and
    country joined with ", ". Separate addresses are joined with ";  ".
    """
    result = ""
    for addr in data or []:
        if addr.get("text"):
            text = addr["text"]
        else:
            # Need to grab the components of the address
            parts: List[str] = list(addr.get("line") or [])
            for key in ("city", "state", "postalCode", "country"):
                if addr.get(key):
                    parts.append(addr[key])
            text = ", ".join(parts)
        result = _append(result, text, ";  ")
    return result

def to_search_display_telecom(data: Optional[List[Dict[str, Any]]]) -> str:
    """ContactPoint: rendered as `system: value`."""
    result = ""
    for cp in data or []:
        result = _append(result, f"{cp.get('system') or ''}: {cp.get('value') or ''}")
    return result
