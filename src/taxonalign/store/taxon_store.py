"""Schema-adaptive, memoizing read access to a reference taxonomic table.

A TaxonStore answers four kinds of lookup over one table: by exact scientific
name, by name components, by identifier, and parent-chain traversal. Every
lookup is memoized per store instance, and every row materialized by any
lookup is indexed by its identifier so later ``get_by_id`` calls (including
those made while walking parent chains) are served from memory.

A store is not safe for concurrent use from several threads; use one store
per worker or guard calls with a lock.
"""

import logging
from typing import Dict, List, Optional, Tuple

from taxonalign.cancellation import CancellationToken, ensure_token
from taxonalign.store.cache import ComponentKey, LookupCache, NameKey
from taxonalign.store.schema import COLUMN_CANDIDATES, REQUIRED_FIELDS, ColumnMapping, Criterion
from taxonalign.store.sources import Row, TaxonSource
from taxonalign.types.data_classes import TaxonRecord, clean_text

logger = logging.getLogger(__name__)

Chain = Tuple[TaxonRecord, ...]


class TaxonStore:
    """Read-only lookups over a reference taxonomic table.

    Args:
        source: The table to read (see taxonalign.store.sources)
        label: Short name of the dataset, used in logs and reports
    """

    def __init__(self, source: TaxonSource, label: Optional[str] = None):
        self.source = source
        self.label = label or source.table_name
        self.mapping = ColumnMapping.resolve(
            source.column_names(),
            COLUMN_CANDIDATES,
            required=REQUIRED_FIELDS,
            table_name=source.table_name,
        )
        self._table = source.prepare(self.mapping)

        self._by_name: LookupCache[NameKey, Tuple[TaxonRecord, ...]] = LookupCache("scientific_name")
        self._by_components: LookupCache[ComponentKey, Tuple[TaxonRecord, ...]] = LookupCache("components")
        self._by_id: LookupCache[str, Optional[TaxonRecord]] = LookupCache("id")
        self._chains: LookupCache[str, Chain] = LookupCache("parent_chain")

        logger.debug(f"Initialized TaxonStore '{self.label}' over {source!r} with {self.mapping!r}")

    def find_by_scientific_name(
        self, scientific_name: Optional[str], cancel_token: Optional[CancellationToken] = None
    ) -> List[TaxonRecord]:
        """Find records whose scientific name equals the input, ignoring case.

        Args:
            scientific_name: Name to look up; surrounding whitespace is ignored
            cancel_token: Optional cooperative cancellation token

        Returns:
            Matching records in table order; empty for blank input
        """
        name = clean_text(scientific_name)
        if name is None:
            return []

        key = NameKey(name)
        cached = self._by_name.lookup(key)
        if cached.found:
            return list(cached.value)

        records = self._query(
            [
                Criterion.equals("scientific_name", name, ignore_case=True),
                Criterion.not_blank("scientific_name"),
            ],
            cancel_token,
        )
        self._by_name.put(key, records)
        logger.debug(f"[{self.label}] scientific name '{name}': {len(records)} record(s)")
        return list(records)

    def find_by_components(
        self,
        genus: Optional[str],
        species: Optional[str],
        infra_epithet: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[TaxonRecord]:
        """Find records by genus, specific epithet and optional infra epithet.

        Matching is exact and case-insensitive. Without an infra epithet only
        records whose infraspecific epithet is null or empty match, so a
        species query never returns its subspecies.

        Args:
            genus: Genus name
            species: Specific epithet
            infra_epithet: Infraspecific epithet, or None for species-level records
            cancel_token: Optional cooperative cancellation token

        Returns:
            Matching records in table order; empty if genus or species is blank
        """
        genus_text = clean_text(genus)
        species_text = clean_text(species)
        if genus_text is None or species_text is None:
            return []
        infra_text = clean_text(infra_epithet)

        key = ComponentKey(genus_text.lower(), species_text.lower(), (infra_text or "").lower())
        cached = self._by_components.lookup(key)
        if cached.found:
            return list(cached.value)

        criteria = [
            Criterion.equals("genus", genus_text, ignore_case=True),
            Criterion.equals("specific_epithet", species_text, ignore_case=True),
        ]
        if infra_text is not None:
            criteria.append(Criterion.equals("infraspecific_epithet", infra_text, ignore_case=True))
        else:
            criteria.append(Criterion.blank("infraspecific_epithet"))
        criteria.append(Criterion.not_blank("scientific_name"))

        records = self._query(criteria, cancel_token)
        self._by_components.put(key, records)
        logger.debug(
            f"[{self.label}] components {genus_text} {species_text} {infra_text or ''}: {len(records)} record(s)"
        )
        return list(records)

    def get_by_id(
        self, identifier: Optional[str], cancel_token: Optional[CancellationToken] = None
    ) -> Optional[TaxonRecord]:
        """Return the record with the given identifier, or None if there is none."""
        key = clean_text(identifier)
        if key is None:
            return None

        cached = self._by_id.lookup(key)
        if cached.found:
            return cached.value

        records = self._query([Criterion.equals("id", key)], cancel_token)
        record = records[0] if records else None
        # Rows are indexed as they are materialized; this also memoizes a miss
        return self._by_id.fill(key, record)

    def get_parent_chain(
        self, record: TaxonRecord, cancel_token: Optional[CancellationToken] = None
    ) -> List[TaxonRecord]:
        """Return the lineage of a record, root first and ending with the record.

        The walk follows ``parent_id`` links and stops at a record without a
        parent, at a parent id that cannot be resolved, or when an identifier
        repeats (a cycle in the data). Whatever was gathered up to that point
        is returned.

        Args:
            record: The record whose lineage is wanted
            cancel_token: Optional cooperative cancellation token, polled at every step

        Returns:
            Records from the root down to ``record``

        Raises:
            ValueError: If ``record`` is None
            OperationCancelledError: If the token is cancelled during the walk
        """
        if record is None:
            raise ValueError("get_parent_chain requires a record")

        token = ensure_token(cancel_token)
        cached = self._chains.lookup(record.id)
        if cached.found:
            return list(cached.value)

        path: List[TaxonRecord] = [record]  # leaf first
        visited = {record.id}
        tail: Chain = ()
        cycle = False
        current = record

        while True:
            token.raise_if_cancelled()

            parent_id = clean_text(current.parent_id)
            if parent_id is None:
                break
            if parent_id in visited:
                cycle = True
                logger.debug(f"[{self.label}] parent cycle at {parent_id} while walking from {record.id}")
                break

            known = self._chains.lookup(parent_id)
            if known.found and not any(ancestor.id in visited for ancestor in known.value):
                tail = known.value
                break

            parent = self.get_by_id(parent_id, token)
            if parent is None:
                logger.debug(f"[{self.label}] parent {parent_id} of {current.id} not found")
                break

            path.append(parent)
            visited.add(parent.id)
            current = parent

        chain: Chain = tail + tuple(reversed(path))
        self._chains.put(record.id, chain)

        # Prefixes are only reusable when the walk ended without a cycle
        if not cycle:
            for depth in range(1, len(path)):
                ancestor = path[depth]
                prefix = tail + tuple(reversed(path[depth:]))
                self._chains.setdefault(ancestor.id, prefix)

        return list(chain)

    def cache_info(self) -> Dict[str, Dict[str, int]]:
        """Return size and hit/miss counts for each lookup cache."""
        return {
            cache.name: cache.stats()
            for cache in (self._by_name, self._by_components, self._by_id, self._chains)
        }

    def _query(self, criteria: List[Criterion], cancel_token: Optional[CancellationToken]) -> Tuple[TaxonRecord, ...]:
        token = ensure_token(cancel_token)
        token.raise_if_cancelled()

        rows = self._table.select(criteria)
        records: List[TaxonRecord] = []
        for row in rows:
            token.raise_if_cancelled()
            record = self._materialize(row)
            if record is None:
                continue
            # Replaces a miss memoized for an id whose raw column value had padding
            self._by_id.fill(record.id, record)
            records.append(record)
        return tuple(records)

    @staticmethod
    def _materialize(row: Row) -> Optional[TaxonRecord]:
        """Build a TaxonRecord from a projected row; None if id or name is blank."""
        identifier = clean_text(row.get("id"))
        scientific_name = clean_text(row.get("scientific_name"))
        if identifier is None or scientific_name is None:
            return None

        return TaxonRecord(
            id=identifier,
            scientific_name=scientific_name,
            authorship=row.get("authorship"),
            status=row.get("status"),
            rank=row.get("rank"),
            accepted_name_usage_id=row.get("accepted_name_usage_id"),
            parent_id=row.get("parent_id"),
            kingdom=row.get("kingdom"),
            subkingdom=row.get("subkingdom"),
            phylum=row.get("phylum"),
            subphylum=row.get("subphylum"),
            class_=row.get("class_"),
            subclass=row.get("subclass"),
            order=row.get("order"),
            suborder=row.get("suborder"),
            superfamily=row.get("superfamily"),
            family=row.get("family"),
            subfamily=row.get("subfamily"),
            tribe=row.get("tribe"),
            subtribe=row.get("subtribe"),
            genus=row.get("genus"),
            subgenus=row.get("subgenus"),
            specific_epithet=row.get("specific_epithet"),
            infraspecific_epithet=row.get("infraspecific_epithet"),
        )
