"""Crosscheck a query dataset against a reference taxonomy.

For every query taxon the crosscheck resolves the best reference match,
compares authorities, aligns the query's classification with the matched
record's classification and lineage, and tallies the findings in a
CrosscheckAnalysis that keeps a bounded number of example rows per finding.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from tqdm import tqdm

from taxonalign import authority
from taxonalign.cancellation import CancellationToken, ensure_token
from taxonalign.ladder import align_ladders, ladder_from_lineage, ladder_from_query, ladder_from_record
from taxonalign.resolution import MatchResolver
from taxonalign.store.taxon_store import TaxonStore
from taxonalign.types.data_classes import AlignmentResult, AlignmentRow, MatchResult, QueryTaxon

logger = logging.getLogger(__name__)


class CrosscheckSampleKind(Enum):
    """Finding categories that keep example rows."""
    MISSING = "missing"
    SYNONYM = "synonym"
    AUTHORITY_MISMATCH = "authority_mismatch"
    MULTIPLE_MATCHES = "multiple_matches"
    RANK_MISMATCH = "rank_mismatch"


@dataclass(frozen=True)
class CrosscheckSample:
    """An example row kept for one finding category."""
    kind: CrosscheckSampleKind
    query_name: str
    source_id: Optional[str]
    reference_id: Optional[str]
    detail: str


@dataclass(frozen=True)
class CrosscheckOutcome:
    """Everything learned about one query taxon.

    ``authority_equivalent`` and ``authority_soft_match`` are None when no
    reference record was found.
    """

    query: QueryTaxon
    match: MatchResult
    authority_equivalent: Optional[bool] = None
    authority_soft_match: Optional[bool] = None
    alignment: Optional[AlignmentResult] = None
    details: Dict[CrosscheckSampleKind, str] = field(default_factory=dict)

    @property
    def found(self) -> bool:
        return self.match.found

    @property
    def rank_mismatches(self) -> List[AlignmentRow]:
        if self.alignment is None:
            return []
        return self.alignment.mismatches()

    @property
    def kinds(self) -> List[CrosscheckSampleKind]:
        return list(self.details)

    @property
    def detail(self) -> str:
        """All finding details joined into one line."""
        return " | ".join(self.details.values())


class CrosscheckAnalysis:
    """Counters and bounded example lists for a crosscheck run.

    Args:
        max_samples: Maximum number of examples kept per finding category

    Raises:
        ValueError: If ``max_samples`` is not positive
    """

    def __init__(self, max_samples: int = 10):
        if max_samples <= 0:
            raise ValueError("max_samples must be greater than zero")
        self.max_samples = max_samples

        self.rows = 0
        self.evaluated = 0
        self.skipped = 0
        self.found = 0
        self.missing = 0
        self.synonyms = 0
        self.authority_matches = 0
        self.authority_soft_matches = 0
        self.authority_mismatches = 0
        self.multiple_matches = 0
        self.rank_mismatches = 0

        self._samples: Dict[CrosscheckSampleKind, List[CrosscheckSample]] = {
            kind: [] for kind in CrosscheckSampleKind
        }

    def register_row(self) -> None:
        self.rows += 1

    def register_skipped(self) -> None:
        self.skipped += 1

    def register_outcome(self, outcome: CrosscheckOutcome) -> None:
        """Count an evaluated outcome and keep its examples."""
        self.evaluated += 1

        if not outcome.found:
            self.missing += 1
        else:
            self.found += 1
            if outcome.match.is_synonym:
                self.synonyms += 1
            if outcome.authority_equivalent:
                self.authority_matches += 1
            else:
                self.authority_mismatches += 1
                if outcome.authority_soft_match:
                    self.authority_soft_matches += 1
            if outcome.match.has_multiple_candidates:
                self.multiple_matches += 1
            if outcome.rank_mismatches:
                self.rank_mismatches += 1

        for kind, detail in outcome.details.items():
            self._add_sample(kind, outcome, detail)

    def _add_sample(self, kind: CrosscheckSampleKind, outcome: CrosscheckOutcome, detail: str) -> None:
        bucket = self._samples[kind]
        if len(bucket) >= self.max_samples:
            return
        primary = outcome.match.primary
        bucket.append(
            CrosscheckSample(
                kind=kind,
                query_name=outcome.query.display_name,
                source_id=outcome.query.source_id,
                reference_id=primary.id if primary else None,
                detail=detail,
            )
        )

    def samples(self, kind: CrosscheckSampleKind) -> List[CrosscheckSample]:
        return list(self._samples[kind])

    def summary(self) -> Dict[str, Any]:
        """Return counters and examples as a JSON-serializable dictionary."""
        return {
            "rows": self.rows,
            "evaluated": self.evaluated,
            "skipped": self.skipped,
            "found": self.found,
            "missing": self.missing,
            "synonyms": self.synonyms,
            "authority_matches": self.authority_matches,
            "authority_soft_matches": self.authority_soft_matches,
            "authority_mismatches": self.authority_mismatches,
            "multiple_matches": self.multiple_matches,
            "rank_mismatches": self.rank_mismatches,
            "samples": {
                kind.value: [
                    {
                        "query_name": s.query_name,
                        "source_id": s.source_id,
                        "reference_id": s.reference_id,
                        "detail": s.detail,
                    }
                    for s in samples
                ]
                for kind, samples in self._samples.items()
            },
        }

    def generate_report(self) -> str:
        """Return a human-readable report of the run."""
        lines = [
            "Crosscheck Summary",
            "==================",
            f"Rows read: {self.rows:,}",
            f"Evaluated: {self.evaluated:,}",
            f"Skipped (no name or components): {self.skipped:,}",
            f"Found: {self.found:,}",
            f"Missing: {self.missing:,}",
            f"Synonyms: {self.synonyms:,}",
            f"Authority matches: {self.authority_matches:,}",
            f"Authority mismatches: {self.authority_mismatches:,} "
            f"({self.authority_soft_matches:,} differ only in parentheses)",
            f"Multiple candidates: {self.multiple_matches:,}",
            f"Rank mismatches: {self.rank_mismatches:,}",
        ]
        for kind, samples in self._samples.items():
            if not samples:
                continue
            lines.append("")
            lines.append(f"Examples: {kind.value} (showing {len(samples)})")
            for sample in samples:
                lines.append(f"  - {sample.query_name}: {sample.detail}")
        return "\n".join(lines)


def _synonym_detail(match: MatchResult, reference_label: str) -> str:
    primary = match.primary
    status = (primary.status or "").strip() or "unknown"
    accepted = match.accepted
    if accepted is not None:
        authorship = authority.normalize(accepted.authorship) or "(no authority)"
        return (
            f"Synonym in {reference_label} (status={status}) -> accepted "
            f"{accepted.scientific_name} [{authorship}] (ID: {accepted.id})"
        )
    if (primary.accepted_name_usage_id or "").strip():
        return (
            f"Synonym in {reference_label} (status={status}) -> accepted ID "
            f"{primary.accepted_name_usage_id.strip()} not resolved"
        )
    return f"Synonym in {reference_label} (status={status})"


def _multiple_detail(match: MatchResult, reference_label: str) -> str:
    parts = [f"{record.id}:{(record.status or '').strip() or '?'}" for record in match.candidates]
    return f"Multiple {reference_label} candidates ({len(parts)}): {', '.join(parts)}"


def _rank_detail(rows: List[AlignmentRow]) -> str:
    parts = []
    for row in rows:
        values = "; ".join(f"{label}={name}" for label, name in row.values.items())
        parts.append(f"{row.rank} ({values})")
    return f"Rank mismatch at {', '.join(parts)}"


def crosscheck_taxon(
    query: QueryTaxon,
    resolver: MatchResolver,
    store: Optional[TaxonStore] = None,
    query_label: str = "IUCN",
    reference_label: str = "COL",
    lineage_label: Optional[str] = "COL lineage",
    cancel_token: Optional[CancellationToken] = None,
) -> CrosscheckOutcome:
    """Crosscheck one query taxon against the resolver's store.

    Args:
        query: The taxon to check
        resolver: Resolver bound to the reference store
        store: Store used for the lineage walk; defaults to ``resolver.store``
        query_label: Ladder label for the query's own classification
        reference_label: Ladder label for the matched record's classification
        lineage_label: Ladder label for the matched record's parent chain;
            None skips the lineage walk
        cancel_token: Optional cooperative cancellation token

    Returns:
        A CrosscheckOutcome describing the findings
    """
    token = ensure_token(cancel_token)
    store = store or resolver.store

    match = resolver.resolve(query, token)
    if not match.found:
        return CrosscheckOutcome(
            query=query,
            match=match,
            details={CrosscheckSampleKind.MISSING: f"Not found in {reference_label}"},
        )

    primary = match.primary
    details: Dict[CrosscheckSampleKind, str] = {}

    if match.is_synonym:
        details[CrosscheckSampleKind.SYNONYM] = _synonym_detail(match, reference_label)

    equivalent = authority.equivalent(query.authority, primary.authorship)
    soft_match = equivalent or authority.equivalent_ignoring_parentheses(query.authority, primary.authorship)
    if not equivalent:
        query_authority = authority.normalize(query.authority) or "(none)"
        reference_authority = authority.normalize(primary.authorship) or "(none)"
        details[CrosscheckSampleKind.AUTHORITY_MISMATCH] = (
            f"Authority mismatch after normalization ({query_label}={query_authority}; "
            f"{reference_label}={reference_authority})"
        )

    if match.has_multiple_candidates:
        details[CrosscheckSampleKind.MULTIPLE_MATCHES] = _multiple_detail(match, reference_label)

    classified = match.accepted or primary
    ladders = [ladder_from_query(query, query_label), ladder_from_record(classified, reference_label)]
    if lineage_label:
        chain = store.get_parent_chain(classified, token)
        ladders.append(ladder_from_lineage(chain, lineage_label))
    alignment = align_ladders(ladders)

    mismatched = alignment.mismatches()
    if mismatched:
        details[CrosscheckSampleKind.RANK_MISMATCH] = _rank_detail(mismatched)

    return CrosscheckOutcome(
        query=query,
        match=match,
        authority_equivalent=equivalent,
        authority_soft_match=soft_match,
        alignment=alignment,
        details=details,
    )


def run_crosscheck(
    queries: Iterable[QueryTaxon],
    store: TaxonStore,
    resolver: Optional[MatchResolver] = None,
    limit: Optional[int] = None,
    max_samples: int = 10,
    query_label: str = "IUCN",
    reference_label: str = "COL",
    lineage_label: Optional[str] = "COL lineage",
    cancel_token: Optional[CancellationToken] = None,
    show_progress: bool = True,
    total: Optional[int] = None,
) -> Tuple[List[CrosscheckOutcome], CrosscheckAnalysis]:
    """Crosscheck a sequence of query taxa.

    Queries with neither a scientific name nor genus and species are counted
    as skipped. The cancellation token is polled between queries and inside
    every lookup.

    Args:
        queries: Query taxa, e.g. from ``input_parser.iter_query_taxa``
        store: Reference store
        resolver: Resolver to use; one is created over ``store`` when None
        limit: Stop after this many rows (None or 0 means no limit)
        max_samples: Examples kept per finding category
        query_label: Ladder label for query classifications
        reference_label: Ladder label for matched-record classifications
        lineage_label: Ladder label for parent chains; None skips the walk
        cancel_token: Optional cooperative cancellation token
        show_progress: Whether to show a tqdm progress bar
        total: Expected number of queries, for the progress bar

    Returns:
        Tuple of (outcomes for evaluated queries, analysis)

    Raises:
        OperationCancelledError: If the token is cancelled
    """
    token = ensure_token(cancel_token)
    resolver = resolver or MatchResolver(store)
    analysis = CrosscheckAnalysis(max_samples)
    outcomes: List[CrosscheckOutcome] = []

    if limit and (total is None or limit < total):
        total = limit
    iter_queries = tqdm(queries, total=total, desc="Crosschecking taxa") if show_progress else queries

    for query in iter_queries:
        token.raise_if_cancelled()
        if limit and analysis.rows >= limit:
            break
        analysis.register_row()

        if not query.has_name and not query.has_components:
            analysis.register_skipped()
            continue

        outcome = crosscheck_taxon(
            query,
            resolver,
            store,
            query_label=query_label,
            reference_label=reference_label,
            lineage_label=lineage_label,
            cancel_token=token,
        )
        analysis.register_outcome(outcome)
        outcomes.append(outcome)

    logger.info(
        f"Crosschecked {analysis.evaluated:,} of {analysis.rows:,} rows: "
        f"{analysis.found:,} found, {analysis.missing:,} missing"
    )
    logger.debug(f"Store cache usage: {store.cache_info()}")
    return outcomes, analysis
