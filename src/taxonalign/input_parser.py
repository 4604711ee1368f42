"""Query file reading for TaxonAlign.

Query files are exports of the dataset being checked (typically the IUCN Red
List taxonomy CSV). Column names are resolved through the same candidate
mechanism used for reference tables, so both IUCN-style ("genusName") and
Darwin Core-style ("genus") headers are accepted.
"""

import logging
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

import polars as pl

from taxonalign.constants import INVALID_VALUES
from taxonalign.exceptions import InputError
from taxonalign.store.schema import ColumnMapping
from taxonalign.types.data_classes import QueryTaxon

logger = logging.getLogger(__name__)

QUERY_COLUMN_CANDIDATES: Dict[str, Tuple[str, ...]] = {
    "scientific_name": ("scientificName", "scientific_name"),
    "genus": ("genusName", "genus"),
    "species": ("speciesName", "species", "specificEpithet"),
    "infra_epithet": ("infraName", "infraspecificEpithet", "infra_epithet"),
    "infra_type": ("infraType", "infra_type"),
    "authority": ("authority", "authorship", "scientificNameAuthorship"),
    "kingdom": ("kingdomName", "kingdom"),
    "phylum": ("phylumName", "phylum"),
    "class_": ("className", "class"),
    "order": ("orderName", "order"),
    "family": ("familyName", "family"),
    "source_id": ("internalTaxonId", "taxonid", "id", "source_id"),
}


def read_query_frame(path: Union[str, Path]) -> pl.DataFrame:
    """Read a CSV, TSV or Parquet query file with every column as text.

    Args:
        path: Path to the query file

    Returns:
        The file contents as a DataFrame

    Raises:
        InputError: If the file does not exist or has an unsupported extension
    """
    path = Path(path)
    if not path.exists():
        raise InputError(f"Query file not found: {path}")

    suffix = path.suffix.lower()
    logger.info(f"Reading query file {path}")
    if suffix == ".parquet":
        frame = pl.read_parquet(path)
        return frame.with_columns(pl.all().cast(pl.Utf8))
    if suffix in (".tsv", ".txt"):
        return pl.read_csv(path, separator="\t", quote_char=None, infer_schema_length=0)
    if suffix == ".csv":
        return pl.read_csv(path, infer_schema_length=0)
    raise InputError(f"Unsupported query file format: {path} (expected .csv, .tsv or .parquet)")


def _clean_value(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in INVALID_VALUES:
        return None
    return text


def iter_query_taxa(frame: pl.DataFrame) -> Iterator[QueryTaxon]:
    """Yield a QueryTaxon for each row of a query frame.

    Blank values and placeholders such as "NULL" or "nan" become None.

    Raises:
        InputError: If the frame has neither a scientific name column nor
            genus and species columns
    """
    mapping = ColumnMapping.resolve(frame.columns, QUERY_COLUMN_CANDIDATES, table_name="query file")
    if not mapping.is_mapped("scientific_name") and not (
        mapping.is_mapped("genus") and mapping.is_mapped("species")
    ):
        raise InputError(
            "Query file needs a scientific name column or genus and species columns; "
            f"found: {', '.join(frame.columns)}"
        )

    columns = {field_name: column for field_name, column in mapping.items() if column}
    for row in frame.select(list(dict.fromkeys(columns.values()))).iter_rows(named=True):
        values = {field_name: _clean_value(row[column]) for field_name, column in columns.items()}
        yield QueryTaxon(**values)
