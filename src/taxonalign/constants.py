"""Shared constants for TaxonAlign."""

# Canonical rank order, least specific first
CANONICAL_RANK_ORDER = (
    "domain",
    "kingdom",
    "phylum",
    "division",
    "class",
    "order",
    "suborder",
    "infraorder",
    "superfamily",
    "family",
    "subfamily",
    "tribe",
    "subtribe",
    "genus",
    "subgenus",
    "species",
    "subspecies",
    "variety",
    "form",
)

# Substrings that mark a rank more specific than species
INFRA_RANK_MARKERS = ("subspecies", "variety", "form")

# Status substrings used to group candidates
ACCEPTED_STATUS_MARKER = "accepted"
SYNONYM_STATUS_MARKER = "synonym"

# Method labels recorded on a match result
METHOD_SCIENTIFIC_NAME = "scientificName"
METHOD_COMPONENTS = "components"
METHOD_NONE = "none"

# Default infra rank when a record carries an infra epithet but no rank text
DEFAULT_INFRA_RANK = "infraspecies"

# Lineage ranks used when a chain member has no rank text
LINEAGE_ROOT_RANK = "root"
LINEAGE_UNRANKED_RANK = "unranked"

# Values treated as empty in query files
INVALID_VALUES = {"", "null", "none", "nan"}

# Characters folded to a plain space before whitespace collapsing
SPACE_LIKE_CHARACTERS = {
    "\u00a0",  # no-break space
    "\u2007",  # figure space
    "\u202f",  # narrow no-break space
    "\u2009",  # thin space
    "\t",
    "\r",
    "\n",
}

# Default reference table name in a Catalogue of Life ColDP export
DEFAULT_REFERENCE_TABLE = "nameusage"
