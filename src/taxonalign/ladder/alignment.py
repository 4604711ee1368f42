"""Align rank ladders from several sources into one rank-by-rank table."""

import logging
from typing import Dict, Iterable, List

from taxonalign import ranks
from taxonalign.ladder.ladder import RankLadder
from taxonalign.types.data_classes import AlignmentResult, AlignmentRow

logger = logging.getLogger(__name__)


def align_ladders(ladders: Iterable[RankLadder]) -> AlignmentResult:
    """Align ladders on their ranks.

    The result has one row per distinct rank across all ladders, ordered by
    canonical rank position (unknown ranks after all canonical ones, then by
    rank text). Each row holds the names of only those sources that have a
    value at that rank. Row order does not depend on the order of ``ladders``.

    Args:
        ladders: Ladders to align; labels should be distinct

    Returns:
        An AlignmentResult, empty when no ladders are given
    """
    ladders = [ladder for ladder in ladders if ladder is not None]
    labels: List[str] = []
    values: Dict[str, Dict[str, str]] = {}

    for ladder in ladders:
        if ladder.source_label in labels:
            logger.warning(f"Duplicate ladder label '{ladder.source_label}'; later values are ignored")
        else:
            labels.append(ladder.source_label)
        for node in ladder:
            values.setdefault(node.rank, {}).setdefault(ladder.source_label, node.name)

    rows = tuple(
        AlignmentRow(rank, values[rank])
        for rank in sorted(values, key=ranks.sort_key)
    )
    return AlignmentResult(rows=rows, source_labels=tuple(labels))
