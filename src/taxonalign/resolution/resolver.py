"""Resolve a QueryTaxon to records of a TaxonStore.

Resolution has three steps: retrieve candidates (by scientific name, then by
name components if the name found nothing), pick a primary record with a
status-group and rank preference, and follow the primary's accepted-name
pointer so synonyms are reported together with the accepted taxon.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from taxonalign.cancellation import CancellationToken, ensure_token
from taxonalign.constants import METHOD_COMPONENTS, METHOD_SCIENTIFIC_NAME
from taxonalign.resolution.config import MatchPreferenceConfig
from taxonalign.store.taxon_store import TaxonStore
from taxonalign.types.data_classes import MatchResult, QueryTaxon, TaxonRecord, clean_text

logger = logging.getLogger(__name__)


def _dedupe(records: Iterable[TaxonRecord]) -> List[TaxonRecord]:
    seen = set()
    unique = []
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


def _rank_matches(record: TaxonRecord, expects_infra: bool, config: MatchPreferenceConfig) -> bool:
    return config.looks_infra(record.rank) == expects_infra


def select_primary(
    candidates: Sequence[TaxonRecord],
    expects_infra: bool,
    config: Optional[MatchPreferenceConfig] = None,
) -> Optional[TaxonRecord]:
    """Choose the primary record among candidates.

    Groups in ``config.group_order`` are tried in turn; inside a group the
    first candidate (in store order) whose rank agrees with ``expects_infra``
    wins. If no group yields one, the first rank-agreeing candidate of any
    status wins, and failing that the first candidate.

    Args:
        candidates: Deduplicated candidate records in store order
        expects_infra: Whether the query names a subspecies, variety or form
        config: Preference configuration; defaults apply when None

    Returns:
        The chosen record, or None when there are no candidates
    """
    if not candidates:
        return None
    if config is None:
        config = MatchPreferenceConfig()

    for group in config.group_order:
        for record in candidates:
            if record.group is group and _rank_matches(record, expects_infra, config):
                return record

    for record in candidates:
        if _rank_matches(record, expects_infra, config):
            return record

    return candidates[0]


class MatchResolver:
    """Find the best-matching reference record(s) for query taxa."""

    def __init__(self, store: TaxonStore, config: Optional[MatchPreferenceConfig] = None):
        self.store = store
        self.config = config or MatchPreferenceConfig()

    def resolve(self, query: QueryTaxon, cancel_token: Optional[CancellationToken] = None) -> MatchResult:
        """Resolve one query taxon.

        Args:
            query: The taxon to look up
            cancel_token: Optional cooperative cancellation token

        Returns:
            A MatchResult; ``found`` is False when no candidate was retrieved

        Raises:
            OperationCancelledError: If the token is cancelled
        """
        token = ensure_token(cancel_token)
        token.raise_if_cancelled()

        candidates: List[TaxonRecord] = []
        methods: List[str] = []

        if query.has_name:
            by_name = self.store.find_by_scientific_name(query.scientific_name, token)
            if by_name:
                candidates.extend(by_name)
                methods.append(METHOD_SCIENTIFIC_NAME)

        if not candidates and query.has_components:
            by_components = self.store.find_by_components(query.genus, query.species, query.infra_epithet, token)
            if by_components:
                candidates.extend(by_components)
                methods.append(METHOD_COMPONENTS)

        unique = _dedupe(candidates)
        primary = select_primary(unique, query.expects_infra_rank, self.config)
        accepted = self._resolve_accepted(primary, token)

        logger.debug(
            f"Resolved '{query.display_name}': {len(unique)} candidate(s) via "
            f"{','.join(methods) or 'none'}, primary={primary.id if primary else None}"
        )
        return MatchResult(
            primary=primary,
            accepted=accepted,
            candidates=tuple(unique),
            methods=tuple(methods),
        )

    def _resolve_accepted(self, primary: Optional[TaxonRecord], token: CancellationToken) -> Optional[TaxonRecord]:
        if primary is None:
            return None

        accepted_id = clean_text(primary.accepted_name_usage_id)
        if accepted_id is not None:
            accepted = self.store.get_by_id(accepted_id, token)
            if accepted is None:
                logger.debug(f"Accepted name {accepted_id} of {primary.id} not found in '{self.store.label}'")
            return accepted

        return None if primary.is_synonym else primary
