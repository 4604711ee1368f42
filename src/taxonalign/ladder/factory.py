"""Build rank ladders from query taxa, reference records and parent chains."""

from typing import List, Optional, Sequence

from taxonalign.constants import DEFAULT_INFRA_RANK, LINEAGE_ROOT_RANK, LINEAGE_UNRANKED_RANK
from taxonalign.ladder.ladder import RankLadder
from taxonalign.types.data_classes import QueryTaxon, RankLadderNode, TaxonRecord, clean_text

# Rank spellings -> abbreviation used inside an infraspecific name
_INFRA_MARKERS = {
    "subspecies": "subsp.",
    "subspecies (plantae)": "subsp.",
    "ssp": "subsp.",
    "ssp.": "subsp.",
    "subsp": "subsp.",
    "subsp.": "subsp.",
    "variety": "var.",
    "var": "var.",
    "var.": "var.",
    "form": "f.",
    "f": "f.",
    "f.": "f.",
}


def proper_case(value: Optional[str]) -> Optional[str]:
    """Upper-case the first letter and lower-case the rest: "MAMMALIA" -> "Mammalia"."""
    text = clean_text(value)
    if text is None:
        return None
    return text[0].upper() + text[1:].lower()


def infra_marker(rank: Optional[str]) -> Optional[str]:
    """Return the abbreviation written before an infraspecific epithet.

    Unknown rank spellings are returned lower-cased; blank input gives None.
    """
    text = clean_text(rank)
    if text is None:
        return None
    lowered = text.lower()
    return _INFRA_MARKERS.get(lowered, lowered)


def infra_rank(rank: Optional[str]) -> str:
    """Map an infra rank spelling to the rank used on a ladder."""
    text = clean_text(rank)
    if text is None:
        return DEFAULT_INFRA_RANK
    lowered = text.lower()
    if lowered == "species":
        return lowered
    marker = _INFRA_MARKERS.get(lowered)
    if marker == "subsp." or "subsp" in lowered:
        return "subspecies"
    if marker == "var.":
        return "variety"
    if marker == "f.":
        return "form"
    return lowered


def species_name(genus: Optional[str], epithet: Optional[str]) -> Optional[str]:
    """Compose the binomial, falling back to whichever part is present."""
    parts = [p for p in (clean_text(genus), clean_text(epithet)) if p]
    return " ".join(parts) or None


def infra_name(base: Optional[str], rank: Optional[str], epithet: Optional[str]) -> Optional[str]:
    """Compose "Genus species subsp. epithet"; None without an epithet."""
    infra = clean_text(epithet)
    if infra is None:
        return None
    parts = [clean_text(base), infra_marker(rank), infra]
    return " ".join(p for p in parts if p)


def _add(nodes: List[RankLadderNode], rank: str, name: Optional[str]) -> None:
    name = clean_text(name)
    if rank and name:
        nodes.append(RankLadderNode(rank, name))


def ladder_from_query(query: QueryTaxon, source_label: str = "IUCN") -> RankLadder:
    """Build the ladder described by a query taxon's own classification."""
    nodes: List[RankLadderNode] = []
    _add(nodes, "kingdom", proper_case(query.kingdom))
    _add(nodes, "phylum", proper_case(query.phylum))
    _add(nodes, "class", proper_case(query.class_))
    _add(nodes, "order", proper_case(query.order))
    _add(nodes, "family", proper_case(query.family))
    _add(nodes, "genus", query.genus)

    species = species_name(query.genus, query.species)
    _add(nodes, "species", species)

    if clean_text(query.infra_epithet):
        _add(nodes, infra_rank(query.infra_type), infra_name(species, query.infra_type, query.infra_epithet))

    return RankLadder(source_label, nodes)


def ladder_from_record(record: TaxonRecord, source_label: str = "COL") -> RankLadder:
    """Build the ladder given by a reference record's flat classification columns."""
    nodes: List[RankLadderNode] = []
    for rank, value in record.classification():
        if rank in ("genus", "subgenus"):
            _add(nodes, rank, value)
        else:
            _add(nodes, rank, proper_case(value))

    species = species_name(record.genus, record.specific_epithet) or record.scientific_name
    _add(nodes, "species", species)

    if clean_text(record.infraspecific_epithet):
        _add(nodes, infra_rank(record.rank), infra_name(species, record.rank, record.infraspecific_epithet))

    return RankLadder(source_label, nodes)


def ladder_from_lineage(chain: Sequence[TaxonRecord], source_label: str = "COL lineage") -> RankLadder:
    """Build a ladder from a root-first parent chain, one node per record.

    A record without rank text is ranked "root" at depth 0 and "unranked"
    below it; "division" is read as "phylum".
    """
    nodes: List[RankLadderNode] = []
    for depth, record in enumerate(chain):
        if record is None:
            continue
        rank = clean_text(record.rank)
        if rank is None:
            rank = LINEAGE_ROOT_RANK if depth == 0 else LINEAGE_UNRANKED_RANK
        elif rank.lower() == "division":
            rank = "phylum"
        _add(nodes, rank.lower(), record.scientific_name)
    return RankLadder(source_label, nodes)
