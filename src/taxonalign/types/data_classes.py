"""Core data classes for TaxonAlign.

This module defines the immutable data classes that flow through the
reconciliation workflow:

- TaxonRecord: one row read from a reference taxonomic table
- QueryTaxon: the organism being looked up
- MatchResult: the outcome of matching a QueryTaxon against a store
- RankLadderNode / AlignmentRow / AlignmentResult: rank-by-rank comparison data

All classes are frozen; records are read from the reference store and never
modified by the engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

import polars as pl

from taxonalign.constants import (
    ACCEPTED_STATUS_MARKER,
    METHOD_NONE,
    SYNONYM_STATUS_MARKER,
)


def clean_text(value: Optional[str]) -> Optional[str]:
    """Return the trimmed value, or None when it is missing or blank."""
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class CandidateGroup(Enum):
    """Status group of a candidate record, used by the primary-match tie-break."""
    ACCEPTED = "accepted"
    SYNONYM = "synonym"
    OTHER = "other"

    @classmethod
    def classify(cls, status: Optional[str]) -> "CandidateGroup":
        """Classify a free-text taxonomic status by substring, ignoring case."""
        if not status:
            return cls.OTHER
        lowered = status.lower()
        if ACCEPTED_STATUS_MARKER in lowered:
            return cls.ACCEPTED
        if SYNONYM_STATUS_MARKER in lowered:
            return cls.SYNONYM
        return cls.OTHER


@dataclass(frozen=True)
class TaxonRecord:
    """A single name usage from a reference taxonomic table.

    Every field except ``id`` and ``scientific_name`` may be None; which ones
    are populated depends on the columns the source table actually has.
    """

    # Core identification fields
    id: str
    scientific_name: str
    authorship: Optional[str] = None
    status: Optional[str] = None
    rank: Optional[str] = None

    # Links to other records in the same table
    accepted_name_usage_id: Optional[str] = None
    parent_id: Optional[str] = None

    # Flat classification
    kingdom: Optional[str] = None
    subkingdom: Optional[str] = None
    phylum: Optional[str] = None
    subphylum: Optional[str] = None
    class_: Optional[str] = None  # Using class_ to avoid conflict with Python keyword
    subclass: Optional[str] = None
    order: Optional[str] = None
    suborder: Optional[str] = None
    superfamily: Optional[str] = None
    family: Optional[str] = None
    subfamily: Optional[str] = None
    tribe: Optional[str] = None
    subtribe: Optional[str] = None
    genus: Optional[str] = None
    subgenus: Optional[str] = None
    specific_epithet: Optional[str] = None
    infraspecific_epithet: Optional[str] = None

    @property
    def group(self) -> CandidateGroup:
        return CandidateGroup.classify(self.status)

    @property
    def is_accepted(self) -> bool:
        return self.group is CandidateGroup.ACCEPTED

    @property
    def is_synonym(self) -> bool:
        return self.group is CandidateGroup.SYNONYM

    def classification(self) -> List[Tuple[str, Optional[str]]]:
        """Return the higher-rank classification as ordered (rank, name) pairs."""
        return [
            ("kingdom", self.kingdom),
            ("subkingdom", self.subkingdom),
            ("phylum", self.phylum),
            ("subphylum", self.subphylum),
            ("class", self.class_),
            ("subclass", self.subclass),
            ("order", self.order),
            ("suborder", self.suborder),
            ("superfamily", self.superfamily),
            ("family", self.family),
            ("subfamily", self.subfamily),
            ("tribe", self.tribe),
            ("subtribe", self.subtribe),
            ("genus", self.genus),
            ("subgenus", self.subgenus),
        ]


@dataclass(frozen=True)
class QueryTaxon:
    """The organism being looked up in a reference store.

    ``expects_infra`` can be set explicitly; when left as None it is derived
    from the presence of an infra epithet or an infra rank type.
    """

    scientific_name: Optional[str] = None
    genus: Optional[str] = None
    species: Optional[str] = None
    infra_epithet: Optional[str] = None
    infra_type: Optional[str] = None
    authority: Optional[str] = None

    # Classification as supplied by the query dataset
    kingdom: Optional[str] = None
    phylum: Optional[str] = None
    class_: Optional[str] = None
    order: Optional[str] = None
    family: Optional[str] = None

    # Identifier in the query dataset, for reporting
    source_id: Optional[str] = None
    expects_infra: Optional[bool] = None

    @property
    def expects_infra_rank(self) -> bool:
        """Return whether a subspecies/variety/form match is expected."""
        if self.expects_infra is not None:
            return self.expects_infra
        return clean_text(self.infra_epithet) is not None or clean_text(self.infra_type) is not None

    @property
    def has_name(self) -> bool:
        return clean_text(self.scientific_name) is not None

    @property
    def has_components(self) -> bool:
        return clean_text(self.genus) is not None and clean_text(self.species) is not None

    @property
    def display_name(self) -> str:
        """Best human-readable name for the query."""
        name = clean_text(self.scientific_name)
        if name:
            return name
        parts = [clean_text(p) for p in (self.genus, self.species, self.infra_epithet)]
        return " ".join(p for p in parts if p)


@dataclass(frozen=True)
class MatchResult:
    """The outcome of resolving a QueryTaxon against a TaxonStore.

    ``accepted`` differs from ``primary`` only when the primary record is a
    synonym whose accepted-name pointer resolved.
    """

    primary: Optional[TaxonRecord] = None
    accepted: Optional[TaxonRecord] = None
    candidates: Tuple[TaxonRecord, ...] = field(default_factory=tuple)
    methods: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def found(self) -> bool:
        return self.primary is not None

    @property
    def method_label(self) -> str:
        """Comma-joined retrieval methods, or "none" when nothing was found."""
        return ",".join(self.methods) if self.methods else METHOD_NONE

    @property
    def is_synonym(self) -> bool:
        return self.primary is not None and self.primary.is_synonym

    @property
    def has_multiple_candidates(self) -> bool:
        return len(self.candidates) > 1


@dataclass(frozen=True)
class RankLadderNode:
    """A (rank, name) pair in a rank ladder."""
    rank: str
    name: str


@dataclass(frozen=True)
class AlignmentRow:
    """One rank of an alignment, with the name each source gives at that rank.

    Sources without a value at this rank are absent from ``values``.
    """

    rank: str
    values: Dict[str, str] = field(default_factory=dict)

    @property
    def is_consistent(self) -> bool:
        """Return whether every source present names the same taxon."""
        names = {name.strip().casefold() for name in self.values.values()}
        return len(names) <= 1

    def missing_from(self, source_labels: Iterable[str]) -> List[str]:
        """Return the labels from ``source_labels`` that have no value here."""
        return [label for label in source_labels if label not in self.values]


@dataclass(frozen=True)
class AlignmentResult:
    """Aligned rank table across several ladders, in canonical rank order."""

    rows: Tuple[AlignmentRow, ...] = field(default_factory=tuple)
    source_labels: Tuple[str, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    @property
    def ranks(self) -> List[str]:
        return [row.rank for row in self.rows]

    def get_row(self, rank: str) -> Optional[AlignmentRow]:
        key = rank.strip().lower()
        for row in self.rows:
            if row.rank == key:
                return row
        return None

    def mismatches(self) -> List[AlignmentRow]:
        """Return rows where two or more sources disagree on the name."""
        return [row for row in self.rows if not row.is_consistent]

    def to_frame(self) -> pl.DataFrame:
        """Return the alignment as a DataFrame with one column per source."""
        data: Dict[str, List[Optional[str]]] = {"rank": [row.rank for row in self.rows]}
        for label in self.source_labels:
            data[label] = [row.values.get(label) for row in self.rows]
        schema = {column: pl.Utf8 for column in data}
        return pl.DataFrame(data, schema=schema)
