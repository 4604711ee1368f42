"""Read access to reference taxonomic tables."""

from taxonalign.store.schema import COLUMN_CANDIDATES, ColumnMapping, Criterion, MatchOp
from taxonalign.store.sources import FrameTaxonSource, SqlTaxonSource, open_taxon_source
from taxonalign.store.taxon_store import TaxonStore

__all__ = [
    "COLUMN_CANDIDATES",
    "ColumnMapping",
    "Criterion",
    "MatchOp",
    "FrameTaxonSource",
    "SqlTaxonSource",
    "open_taxon_source",
    "TaxonStore",
]
