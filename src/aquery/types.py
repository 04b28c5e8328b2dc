"""AQuery type lattice — the tags the soft checker reasons about."""

from __future__ import annotations


# ============================================================
# TYPE TAGS
# ============================================================

TY_NUMERIC: str = "numeric"
TY_BOOLEAN: str = "boolean"
TY_STRING: str = "string"
TY_UNKNOWN: str = "unknown"
# Only reported when a list the parser guarantees nonempty turns up empty
TY_UNIT: str = "unit"

ALL_TAGS: tuple[str, ...] = (TY_NUMERIC, TY_BOOLEAN, TY_STRING, TY_UNKNOWN)


# ============================================================
# EXPECTATIONS
# ============================================================

# Ordered: the first member is the one reported in a mismatch.
BOOL: tuple[str, ...] = (TY_BOOLEAN,)
NUM: tuple[str, ...] = (TY_NUMERIC,)
# Booleans allowed in arithmetic so that e.g. c1 * (c2 > 2) works as 0/1
NUM_AND_BOOL: tuple[str, ...] = (TY_NUMERIC, TY_BOOLEAN)

_DISPLAY_NAMES: dict[str, str] = {
    TY_NUMERIC: "Numeric",
    TY_BOOLEAN: "Boolean",
    TY_STRING: "String",
    TY_UNKNOWN: "Unknown",
    TY_UNIT: "Unit",
}


def tag_matches(expected: tuple[str, ...], actual: str) -> bool:
    """True if `actual` satisfies `expected`, with Unknown accepted both ways."""
    if actual == TY_UNKNOWN:
        return True
    for tag in expected:
        if tag == actual or tag == TY_UNKNOWN:
            return True
    return False


def tag_name(tag: str) -> str:
    """Human-readable name of a tag, for messages."""
    if tag in _DISPLAY_NAMES:
        return _DISPLAY_NAMES[tag]
    return tag
