"""Relational read access to reference taxonomic tables.

A TaxonSource exposes the two capabilities a TaxonStore needs: listing the
table's actual columns, and preparing a projection for a resolved
ColumnMapping. The prepared table answers ``select(criteria)`` with rows keyed
by canonical field name, every value converted to text or None.

Two backends are provided:

- SqlTaxonSource: any database reachable through SQLAlchemy (the Catalogue of
  Life SQLite import in practice)
- FrameTaxonSource: an in-memory polars DataFrame (CSV/TSV/Parquet exports)

In both, a canonical field with no backing column is projected as a constant
null expression, so predicates on it behave exactly like predicates on an
all-null column. Errors raised by the database driver or by polars are not
caught here.
"""

import functools
import logging
import operator
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import polars as pl
import sqlalchemy as sa
from sqlalchemy.engine import Engine

from taxonalign.constants import DEFAULT_REFERENCE_TABLE
from taxonalign.exceptions import UnsupportedSourceError
from taxonalign.store.schema import ColumnMapping, Criterion, MatchOp

logger = logging.getLogger(__name__)

Row = Dict[str, Optional[str]]

SQLITE_SUFFIXES = {".sqlite", ".sqlite3", ".db"}
FRAME_SUFFIXES = {".csv", ".tsv", ".txt", ".parquet"}


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


class SqlPreparedTable:
    """A reference table bound to a column mapping, queried through SQLAlchemy Core."""

    def __init__(self, engine: Engine, table_name: str, mapping: ColumnMapping):
        self._engine = engine
        mapped_columns = list(dict.fromkeys(column for _, column in mapping.items() if column))
        self._table = sa.table(table_name, *[sa.column(column) for column in mapped_columns])
        self._accessors = {
            field_name: (self._table.c[column] if column else sa.null())
            for field_name, column in mapping.items()
        }
        self._projection = [expr.label(field_name) for field_name, expr in self._accessors.items()]

    def _clause(self, criterion: Criterion):
        expr = self._accessors.get(criterion.field)
        if expr is None:
            expr = sa.null()

        if criterion.op is MatchOp.EQUALS:
            return expr == criterion.value
        if criterion.op is MatchOp.EQUALS_IGNORE_CASE:
            # Both sides go through the database's lower() so a value always matches itself
            return sa.func.lower(expr) == sa.func.lower(sa.literal(criterion.value or ""))
        if criterion.op is MatchOp.BLANK:
            return sa.or_(expr.is_(None), expr == "")
        if criterion.op is MatchOp.NOT_BLANK:
            return sa.and_(expr.is_not(None), expr != "")
        raise ValueError(f"Unsupported match operation: {criterion.op}")

    def select(self, criteria: Sequence[Criterion]) -> List[Row]:
        stmt = sa.select(*self._projection).select_from(self._table)
        if criteria:
            stmt = stmt.where(*[self._clause(c) for c in criteria])

        with self._engine.connect() as connection:
            result = connection.execute(stmt)
            return [
                {key: _as_text(value) for key, value in row.items()}
                for row in result.mappings()
            ]


class SqlTaxonSource:
    """Taxon source backed by a table in an SQLAlchemy-reachable database."""

    def __init__(self, engine: Engine, table_name: str = DEFAULT_REFERENCE_TABLE):
        self.engine = engine
        self.table_name = table_name

    def column_names(self) -> List[str]:
        inspector = sa.inspect(self.engine)
        return [column["name"] for column in inspector.get_columns(self.table_name)]

    def prepare(self, mapping: ColumnMapping) -> SqlPreparedTable:
        return SqlPreparedTable(self.engine, self.table_name, mapping)

    def __repr__(self) -> str:
        return f"SqlTaxonSource({self.engine.url!r}, table={self.table_name!r})"


class FramePreparedTable:
    """A polars DataFrame bound to a column mapping."""

    def __init__(self, frame: pl.DataFrame, mapping: ColumnMapping):
        self._frame = frame
        self._exprs: Dict[str, pl.Expr] = {
            field_name: (pl.col(column).cast(pl.Utf8) if column else pl.lit(None, dtype=pl.Utf8))
            for field_name, column in mapping.items()
        }
        self._projection = [expr.alias(field_name) for field_name, expr in self._exprs.items()]

    def _predicate(self, criterion: Criterion) -> pl.Expr:
        expr = self._exprs.get(criterion.field)
        if expr is None:
            expr = pl.lit(None, dtype=pl.Utf8)

        if criterion.op is MatchOp.EQUALS:
            return expr == criterion.value
        if criterion.op is MatchOp.EQUALS_IGNORE_CASE:
            return expr.str.to_lowercase() == (criterion.value or "").lower()
        if criterion.op is MatchOp.BLANK:
            return expr.is_null() | (expr == "")
        if criterion.op is MatchOp.NOT_BLANK:
            return expr.is_not_null() & (expr != "")
        raise ValueError(f"Unsupported match operation: {criterion.op}")

    def select(self, criteria: Sequence[Criterion]) -> List[Row]:
        frame = self._frame
        if criteria:
            predicate = functools.reduce(operator.and_, [self._predicate(c) for c in criteria])
            frame = frame.filter(predicate)
        return frame.select(self._projection).to_dicts()


class FrameTaxonSource:
    """Taxon source backed by an in-memory polars DataFrame."""

    def __init__(self, frame: pl.DataFrame, table_name: str = DEFAULT_REFERENCE_TABLE):
        self.frame = frame
        self.table_name = table_name

    def column_names(self) -> List[str]:
        return list(self.frame.columns)

    def prepare(self, mapping: ColumnMapping) -> FramePreparedTable:
        return FramePreparedTable(self.frame, mapping)

    def __repr__(self) -> str:
        return f"FrameTaxonSource({self.frame.height} rows, table={self.table_name!r})"


TaxonSource = Union[SqlTaxonSource, FrameTaxonSource]


def read_reference_frame(path: Path) -> pl.DataFrame:
    """Read a CSV/TSV/Parquet reference export with every column as text."""
    suffix = path.suffix.lower()
    logger.info(f"Reading reference table from {path}")
    if suffix == ".parquet":
        return pl.read_parquet(path)
    if suffix in (".tsv", ".txt"):
        return pl.read_csv(path, separator="\t", quote_char=None, infer_schema_length=0)
    if suffix == ".csv":
        return pl.read_csv(path, infer_schema_length=0)
    raise UnsupportedSourceError(f"Unsupported reference file format: {path}")


def open_taxon_source(location: Union[str, Path], table_name: str = DEFAULT_REFERENCE_TABLE) -> TaxonSource:
    """Open a reference location as a TaxonSource.

    Args:
        location: An SQLAlchemy URL, a SQLite file, or a CSV/TSV/Parquet file
        table_name: Table to read when the location is a database

    Returns:
        A SqlTaxonSource or FrameTaxonSource

    Raises:
        FileNotFoundError: If a file location does not exist
        UnsupportedSourceError: If the location type is not recognised
    """
    text = str(location)
    if "://" in text:
        logger.info(f"Connecting to reference database {text.split('//', 1)[0]}//...")
        return SqlTaxonSource(sa.create_engine(text), table_name)

    path = Path(text)
    if not path.exists():
        raise FileNotFoundError(f"Reference source not found: {path}")

    suffix = path.suffix.lower()
    if suffix in SQLITE_SUFFIXES:
        # Open read-only; the engine never writes to reference data
        url = f"sqlite:///file:{path.resolve()}?mode=ro&uri=true"
        logger.info(f"Opening reference SQLite database {path}")
        return SqlTaxonSource(sa.create_engine(url), table_name)
    if suffix in FRAME_SUFFIXES:
        return FrameTaxonSource(read_reference_frame(path), table_name)

    raise UnsupportedSourceError(f"Don't know how to open reference source: {path}")
