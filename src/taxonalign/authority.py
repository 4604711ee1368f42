"""Normalization and comparison of taxonomic authorship strings.

Authority citations ("Linnaeus, 1758", "(Günther, 1868)") are exported with
inconsistent spacing between datasets. Two citations are equivalent when they
match after whitespace normalization, ignoring case. Parentheses mark a
species that has since moved to another genus; that difference is reported
as a soft match by ``equivalent_ignoring_parentheses`` rather than folded into
``equivalent``.
"""

import re
from typing import Optional

from taxonalign.constants import SPACE_LIKE_CHARACTERS

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize(text: Optional[str]) -> str:
    """Collapse whitespace runs (including no-break and thin spaces) and trim.

    normalize(normalize(x)) == normalize(x) for every string x.
    """
    if text is None:
        return ""

    folded = "".join(" " if ch in SPACE_LIKE_CHARACTERS else ch for ch in text)
    return _WHITESPACE_RUN.sub(" ", folded).strip()


def comparison_key(text: Optional[str]) -> str:
    """Return the case-insensitive comparison key for an authority string."""
    return normalize(text).casefold()


def equivalent(a: Optional[str], b: Optional[str]) -> bool:
    """Return whether two authority strings cite the same authorship.

    Two blank values are equivalent. A blank value is never equivalent to a
    non-blank one.
    """
    return comparison_key(a) == comparison_key(b)


def strip_parentheses(text: Optional[str]) -> str:
    """Drop one pair of enclosing parentheses from a normalized authority."""
    normalized = normalize(text)
    if normalized.startswith("(") and normalized.endswith(")"):
        return normalize(normalized[1:-1])
    return normalized


def equivalent_ignoring_parentheses(a: Optional[str], b: Optional[str]) -> bool:
    """Return whether two authorities match once enclosing parentheses are removed."""
    return strip_parentheses(a).casefold() == strip_parentheses(b).casefold()
