"""Error classes for TaxonAlign."""


class TaxonAlignError(Exception):
    """Base class for TaxonAlign exceptions."""
    pass


class OperationCancelledError(TaxonAlignError):
    """Raised when a lookup or batch is aborted through a cancellation token."""
    pass


class UnsupportedSourceError(TaxonAlignError, ValueError):
    """Raised when a reference location cannot be opened as a taxon source."""
    pass


class InputError(TaxonAlignError):
    """Raised when there's an issue with query input files."""
    pass
