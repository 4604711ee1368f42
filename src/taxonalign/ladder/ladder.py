"""Rank ladders: one source's ordered (rank, name) view of a taxon's hierarchy."""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from taxonalign import ranks
from taxonalign.types.data_classes import RankLadderNode, clean_text


class RankLadder:
    """An ordered list of (rank, name) nodes from one source, one node per rank.

    Nodes with a blank rank or name are dropped. Ranks are normalized through
    ``taxonalign.ranks.normalize`` and only the first node for each rank is
    kept, so ranks are unique ignoring case.

    Args:
        source_label: Non-blank label of the source, e.g. "IUCN" or "COL"
        nodes: Nodes in source order

    Raises:
        ValueError: If ``source_label`` is blank
    """

    def __init__(self, source_label: str, nodes: Iterable[RankLadderNode] = ()):
        label = clean_text(source_label)
        if label is None:
            raise ValueError("A rank ladder requires a non-blank source label")
        self.source_label = label

        kept: List[RankLadderNode] = []
        seen: Dict[str, RankLadderNode] = {}
        for node in nodes:
            if node is None:
                continue
            rank = ranks.normalize(node.rank)
            name = clean_text(node.name)
            if not rank or name is None or rank in seen:
                continue
            kept_node = RankLadderNode(rank, name)
            seen[rank] = kept_node
            kept.append(kept_node)

        self.nodes: Tuple[RankLadderNode, ...] = tuple(kept)
        self._lookup = seen

    def get_value(self, rank: Optional[str]) -> Optional[str]:
        """Return the name at a rank (case-insensitive), or None."""
        key = ranks.normalize(rank)
        if not key:
            return None
        node = self._lookup.get(key)
        return node.name if node else None

    @property
    def ranks(self) -> List[str]:
        return [node.rank for node in self.nodes]

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[RankLadderNode]:
        return iter(self.nodes)

    def __repr__(self) -> str:
        body = ", ".join(f"{node.rank}={node.name}" for node in self.nodes)
        return f"RankLadder({self.source_label!r}: {body})"
