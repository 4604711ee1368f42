"""Canonical taxonomic rank order and rank-name normalization.

Ranks outside the canonical order still sort deterministically: they are
placed after every canonical rank, at a position derived from a SHA-256
digest of the rank text, so the same input always produces the same order
regardless of the interpreter's hash seed.
"""

import hashlib
from typing import Dict, Iterable, Optional, Tuple

from taxonalign.constants import CANONICAL_RANK_ORDER, INFRA_RANK_MARKERS

_RANK_POSITIONS: Dict[str, int] = {rank: i for i, rank in enumerate(CANONICAL_RANK_ORDER)}


def normalize(rank: Optional[str]) -> str:
    """Trim and lower-case a rank label. None becomes the empty string."""
    if rank is None:
        return ""
    return rank.strip().lower()


def position(rank: Optional[str]) -> int:
    """Return the sort position of a rank.

    Canonical ranks map to their index in CANONICAL_RANK_ORDER. Any other rank
    maps to a value greater than every canonical index.
    """
    key = normalize(rank)
    if key in _RANK_POSITIONS:
        return _RANK_POSITIONS[key]

    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return len(CANONICAL_RANK_ORDER) + int(digest[:12], 16)


def sort_key(rank: Optional[str]) -> Tuple[int, str]:
    """Key for ordering ranks: canonical position, then rank text."""
    return position(rank), normalize(rank)


def is_infra_rank(rank: Optional[str], markers: Iterable[str] = INFRA_RANK_MARKERS) -> bool:
    """Return whether the rank text contains one of the infra-rank markers."""
    key = normalize(rank)
    if not key:
        return False
    return any(marker in key for marker in markers)
