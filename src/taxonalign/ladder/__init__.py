"""Rank ladders and their alignment."""

from taxonalign.ladder.alignment import align_ladders
from taxonalign.ladder.factory import infra_marker, ladder_from_lineage, ladder_from_query, ladder_from_record
from taxonalign.ladder.ladder import RankLadder

__all__ = [
    "RankLadder",
    "align_ladders",
    "infra_marker",
    "ladder_from_lineage",
    "ladder_from_query",
    "ladder_from_record",
]
