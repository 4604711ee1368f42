import polars as pl
import pytest
import sqlalchemy as sa
from sqlalchemy.pool import StaticPool

from taxonalign.config import config
from taxonalign.store import FrameTaxonSource, SqlTaxonSource, TaxonStore

# Columns of a Catalogue of Life ColDP "nameusage" export (subset)
COL_COLUMNS = [
    "ID",
    "parentID",
    "acceptedNameUsageID",
    "status",
    "rank",
    "scientificName",
    "authorship",
    "kingdom",
    "phylum",
    "class",
    "order",
    "family",
    "genericName",
    "specificEpithet",
    "infraspecificEpithet",
]

FELIDAE = {
    "kingdom": "Animalia",
    "phylum": "Chordata",
    "class": "Mammalia",
    "order": "Carnivora",
    "family": "Felidae",
}

MOBULIDAE = {
    "kingdom": "Animalia",
    "phylum": "Chordata",
    "class": "Chondrichthyes",
    "order": "Myliobatiformes",
    "family": "Mobulidae",
}


def _row(**values):
    row = {column: None for column in COL_COLUMNS}
    row.update(values)
    return row


COL_ROWS = [
    _row(ID="1", status="accepted", scientificName="Biota"),
    _row(ID="2", parentID="1", status="accepted", rank="kingdom", scientificName="Animalia"),
    _row(ID="3", parentID="2", status="accepted", rank="phylum", scientificName="Chordata"),
    _row(ID="4", parentID="3", status="accepted", rank="class", scientificName="Mammalia"),
    _row(ID="5", parentID="4", status="accepted", rank="order", scientificName="Carnivora"),
    _row(ID="6", parentID="5", status="accepted", rank="family", scientificName="Felidae"),
    _row(ID="7", parentID="6", status="accepted", rank="genus", scientificName="Panthera", genericName="Panthera"),
    _row(
        ID="8", parentID="7", status="accepted", rank="species", scientificName="Panthera leo",
        authorship="(Linnaeus, 1758)", genericName="Panthera", specificEpithet="leo", **FELIDAE,
    ),
    _row(
        ID="9", parentID="8", status="accepted", rank="subspecies", scientificName="Panthera leo persica",
        authorship="(Meyer, 1826)", genericName="Panthera", specificEpithet="leo",
        infraspecificEpithet="persica", **FELIDAE,
    ),
    _row(
        ID="10", parentID="8", acceptedNameUsageID="8", status="synonym", rank="species",
        scientificName="Felis leo", authorship="Linnaeus, 1758", genericName="Felis", specificEpithet="leo",
    ),
    _row(
        ID="11", parentID="12", status="accepted", rank="species", scientificName="Mobula alfredi",
        authorship="(Krefft, 1868)", genericName="Mobula", specificEpithet="alfredi", **MOBULIDAE,
    ),
    _row(ID="12", parentID="13", status="accepted", rank="genus", scientificName="Mobula", genericName="Mobula"),
    _row(ID="13", parentID="3", status="accepted", rank="family", scientificName="Mobulidae"),
    _row(
        ID="14", parentID="11", acceptedNameUsageID="11", status="synonym", rank="species",
        scientificName="Manta alfredi", authorship="Krefft, 1868", genericName="Manta", specificEpithet="alfredi",
    ),
    _row(
        ID="15", acceptedNameUsageID="16", status="ambiguous synonym", rank="species",
        scientificName="Lynx lynx", genericName="Lynx", specificEpithet="lynx",
    ),
    _row(
        ID="16", status="accepted", rank="species", scientificName="Lynx lynx",
        genericName="Lynx", specificEpithet="lynx",
    ),
    _row(
        ID="17", acceptedNameUsageID="999", status="synonym", rank="species",
        scientificName="Testudo ghostii", genericName="Testudo", specificEpithet="ghostii",
    ),
    # Parent cycle in the data: 20 -> 21 -> 20
    _row(ID="20", parentID="21", status="accepted", rank="species", scientificName="Cyclus circularis"),
    _row(ID="21", parentID="20", status="accepted", rank="genus", scientificName="Cyclus"),
    # Rows without a usable id or name
    _row(ID="30", status="accepted", rank="species", scientificName=""),
    _row(ID="", status="accepted", rank="species", scientificName="Nullius nominis"),
    # Non-ASCII capital letter in the name
    _row(
        ID="50", status="accepted", rank="species", scientificName="Œnanthe crocata",
        genericName="Œnanthe", specificEpithet="crocata",
    ),
    # Parent id that does not resolve
    _row(ID="40", parentID="404", status="accepted", rank="species", scientificName="Orphanus solus"),
]


def build_reference_frame(rows=None, columns=None) -> pl.DataFrame:
    rows = COL_ROWS if rows is None else rows
    columns = COL_COLUMNS if columns is None else columns
    return pl.DataFrame(rows, schema={column: pl.Utf8 for column in columns})


def load_reference_table(engine, rows=None, table_name="nameusage"):
    rows = COL_ROWS if rows is None else rows
    metadata = sa.MetaData()
    table = sa.Table(table_name, metadata, *[sa.Column(column, sa.Text) for column in COL_COLUMNS])
    metadata.create_all(engine)
    with engine.begin() as connection:
        connection.execute(table.insert(), rows)
    return engine


@pytest.fixture
def reference_frame():
    return build_reference_frame()


@pytest.fixture
def reference_engine():
    engine = sa.create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    load_reference_table(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def frame_store(reference_frame):
    return TaxonStore(FrameTaxonSource(reference_frame), label="COL")


@pytest.fixture
def sql_store(reference_engine):
    return TaxonStore(SqlTaxonSource(reference_engine, "nameusage"), label="COL")


@pytest.fixture(params=["frame", "sql"])
def store(request):
    """A store over the reference rows, once per backend."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def reference_csv(tmp_path, reference_frame):
    path = tmp_path / "nameusage.csv"
    reference_frame.write_csv(path)
    return path


@pytest.fixture
def reference_sqlite(tmp_path):
    path = tmp_path / "col.sqlite"
    engine = sa.create_engine(f"sqlite:///{path}")
    load_reference_table(engine)
    engine.dispose()
    return path


@pytest.fixture(autouse=True)
def restore_config():
    """Undo changes tests make to the global config."""
    saved = dict(vars(config))
    yield
    for key, value in saved.items():
        setattr(config, key, value)
