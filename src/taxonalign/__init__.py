"""TaxonAlign: match taxa between reference taxonomies and align their hierarchies.

TaxonAlign takes a taxon described by one dataset (for example an IUCN Red
List export), finds the best-matching record in a reference taxonomy (for
example the Catalogue of Life name usage table), follows synonym pointers to
the accepted name, and lines up both classifications rank by rank.
"""

__version__ = "0.1.0"

from taxonalign.types.data_classes import (
    AlignmentResult,
    AlignmentRow,
    CandidateGroup,
    MatchResult,
    QueryTaxon,
    RankLadderNode,
    TaxonRecord,
)
from taxonalign.cancellation import CancellationToken
from taxonalign.exceptions import OperationCancelledError, TaxonAlignError

__all__ = [
    "AlignmentResult",
    "AlignmentRow",
    "CandidateGroup",
    "MatchResult",
    "QueryTaxon",
    "RankLadderNode",
    "TaxonRecord",
    "CancellationToken",
    "OperationCancelledError",
    "TaxonAlignError",
]
