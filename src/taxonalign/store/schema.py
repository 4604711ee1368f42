"""Schema-adaptive column mapping for reference taxonomic tables.

Reference exports name the same concept differently from one version to the
next ("genericName" vs "genus", "phylum" vs "division"). A ColumnMapping is
resolved once, when a store is constructed, from the columns the table
actually has. Canonical fields whose columns are absent map to None and the
source backends read them as a constant null.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# Canonical field -> candidate column names, in order of preference
COLUMN_CANDIDATES: Dict[str, Tuple[str, ...]] = {
    "id": ("id", "ID", "taxonID"),
    "scientific_name": ("scientificName", "scientific_name"),
    "authorship": ("authorship", "scientificNameAuthorship"),
    "status": ("status", "taxonomicStatus"),
    "rank": ("rank", "taxonRank"),
    "accepted_name_usage_id": ("acceptedNameUsageID", "acceptedNameUsageId", "acceptedNameUsage"),
    "parent_id": ("parentID", "parentId", "parentNameUsageID"),
    "kingdom": ("kingdom",),
    "subkingdom": ("subkingdom",),
    "phylum": ("phylum", "division"),
    "subphylum": ("subphylum",),
    "class_": ("class",),
    "subclass": ("subclass",),
    "order": ("order",),
    "suborder": ("suborder",),
    "superfamily": ("superfamily",),
    "family": ("family",),
    "subfamily": ("subfamily",),
    "tribe": ("tribe",),
    "subtribe": ("subtribe",),
    "genus": ("genericName", "genus"),
    "subgenus": ("infragenericEpithet", "subgenus"),
    "specific_epithet": ("specificEpithet", "species"),
    "infraspecific_epithet": ("infraspecificEpithet", "infraspecies"),
}

REQUIRED_FIELDS = ("id", "scientific_name")


class MatchOp(Enum):
    """Comparison applied by a Criterion."""
    EQUALS = "equals"
    EQUALS_IGNORE_CASE = "equals_ignore_case"
    BLANK = "blank"
    NOT_BLANK = "not_blank"


@dataclass(frozen=True)
class Criterion:
    """A predicate over one canonical field.

    Criteria on unmapped fields behave as if the field were null: equality
    never matches, BLANK always matches, NOT_BLANK never matches.
    """

    field: str
    op: MatchOp
    value: Optional[str] = None

    @classmethod
    def equals(cls, field: str, value: str, ignore_case: bool = False) -> "Criterion":
        op = MatchOp.EQUALS_IGNORE_CASE if ignore_case else MatchOp.EQUALS
        return cls(field, op, value)

    @classmethod
    def blank(cls, field: str) -> "Criterion":
        return cls(field, MatchOp.BLANK)

    @classmethod
    def not_blank(cls, field: str) -> "Criterion":
        return cls(field, MatchOp.NOT_BLANK)


class ColumnMapping:
    """Resolved mapping from canonical field to the table's actual column."""

    def __init__(self, columns: Mapping[str, Optional[str]]):
        self._columns: Dict[str, Optional[str]] = dict(columns)

    @classmethod
    def resolve(
        cls,
        available_columns: Iterable[str],
        candidates: Optional[Mapping[str, Sequence[str]]] = None,
        required: Sequence[str] = (),
        table_name: str = "table",
    ) -> "ColumnMapping":
        """Build a mapping by probing the available columns.

        Candidate names are matched case-insensitively; the first candidate
        present wins and the table's own spelling is kept.

        Args:
            available_columns: Column names the table actually has
            candidates: Canonical field -> candidate names (defaults to COLUMN_CANDIDATES)
            required: Fields that should be present; missing ones are logged
            table_name: Name used in log messages

        Returns:
            A ColumnMapping covering every field in ``candidates``
        """
        if candidates is None:
            candidates = COLUMN_CANDIDATES

        by_lower: Dict[str, str] = {}
        for column in available_columns:
            if column is None:
                continue
            by_lower.setdefault(column.lower(), column)

        resolved: Dict[str, Optional[str]] = {}
        for field_name, names in candidates.items():
            resolved[field_name] = next(
                (by_lower[name.lower()] for name in names if name.lower() in by_lower),
                None,
            )

        mapping = cls(resolved)
        for field_name in required:
            if mapping.column_for(field_name) is None:
                logger.warning(
                    f"Table '{table_name}' has no column for required field '{field_name}' "
                    f"(tried {', '.join(candidates.get(field_name, ()))}); lookups will return no rows"
                )
        unmapped = mapping.unmapped_fields
        if unmapped:
            logger.debug(f"Table '{table_name}' lacks columns for: {', '.join(unmapped)}")
        return mapping

    @property
    def fields(self) -> List[str]:
        return list(self._columns)

    @property
    def unmapped_fields(self) -> List[str]:
        return [name for name, column in self._columns.items() if column is None]

    def column_for(self, field_name: str) -> Optional[str]:
        """Return the actual column for a canonical field, or None if absent."""
        return self._columns.get(field_name)

    def is_mapped(self, field_name: str) -> bool:
        return self.column_for(field_name) is not None

    def items(self):
        return self._columns.items()

    def __repr__(self) -> str:
        return f"ColumnMapping({self._columns!r})"
