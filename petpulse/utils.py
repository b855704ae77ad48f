import re
from typing import Any, List, Optional

LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def safe_text(value: Any) -> str:
    """Purpose: Coerce a loosely typed payload value into trimmed text.
    Inputs/Outputs: Input is any value; output is the stripped string, or "" for
        anything that is not a string.
    Side Effects / State: None; pure function.
    Dependencies: None; used by profile normalization and every stage handler.
    Failure Modes: Never raises. Numbers are not stringified on purpose so that
        a numeric "symptoms" field counts as missing.
    If Removed: Stage validation cannot tell blank input from real input.
    Testing Notes: Whitespace-only strings must come back empty.
    """
    # Only strings carry text; everything else is treated as absent.
    if isinstance(value, str):
        return value.strip()
    return ""


def to_int(value: Any) -> Optional[int]:
    """Parse an integer the way a lenient form field would, or return None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value)
    if isinstance(value, str):
        match = LEADING_INT_RE.match(value)
        if match:
            return int(match.group(1))
    return None


def clamp(value: Optional[int], low: int, high: int) -> Optional[int]:
    if value is None:
        return None
    return max(low, min(high, value))


def as_string_list(value: Any) -> List[str]:
    """Purpose: Normalize a generator field into a list of non-empty strings.
    Inputs/Outputs: Input is a list, a single string, or anything else; output is
        a list of trimmed, non-empty strings.
    Side Effects / State: None; pure function.
    Dependencies: Uses safe_text; called by issue and plan normalization.
    Failure Modes: Non-list, non-string input yields an empty list.
    If Removed: Healing cannot detect empty or junk-filled list fields.
    Testing Notes: Mixed lists (numbers, blanks, None) keep only real text.
    """
    # Accept a bare string as a one-item list; stringify scalar list items.
    if isinstance(value, list):
        items = []
        for entry in value:
            if entry is None or isinstance(entry, (dict, list)):
                continue
            text = safe_text(entry if isinstance(entry, str) else str(entry))
            if text:
                items.append(text)
        return items
    text = safe_text(value)
    return [text] if text else []
