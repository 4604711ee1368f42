import polars as pl
import pytest

from taxonalign.exceptions import InputError
from taxonalign.input_parser import iter_query_taxa, read_query_frame
from taxonalign.resolution import MatchResolver
from taxonalign.store import FrameTaxonSource, TaxonStore

IUCN_CSV = """internalTaxonId,scientificName,kingdomName,phylumName,className,orderName,familyName,genusName,speciesName,infraType,infraName,authority
15951,Panthera leo,ANIMALIA,CHORDATA,MAMMALIA,CARNIVORA,FELIDAE,Panthera,leo,,,"(Linnaeus, 1758)"
68639,Panthera leo persica,ANIMALIA,CHORDATA,MAMMALIA,CARNIVORA,FELIDAE,Panthera,leo,ssp.,persica,"(Meyer, 1826)"
195459,Mobula alfredi,ANIMALIA,CHORDATA,CHONDRICHTHYES,MYLIOBATIFORMES,MOBULIDAE,Mobula,alfredi,NULL,NULL,"(Krefft, 1868)"
"""


@pytest.fixture
def iucn_csv(tmp_path):
    path = tmp_path / "taxonomy.csv"
    path.write_text(IUCN_CSV)
    return path


def test_read_iucn_export(iucn_csv):
    taxa = list(iter_query_taxa(read_query_frame(iucn_csv)))

    assert len(taxa) == 3
    lion = taxa[0]
    assert lion.scientific_name == "Panthera leo"
    assert lion.genus == "Panthera"
    assert lion.class_ == "MAMMALIA"
    assert lion.authority == "(Linnaeus, 1758)"
    assert lion.source_id == "15951"
    assert lion.infra_epithet is None
    assert not lion.expects_infra_rank


def test_infra_columns(iucn_csv):
    persica = list(iter_query_taxa(read_query_frame(iucn_csv)))[1]
    assert persica.infra_type == "ssp."
    assert persica.infra_epithet == "persica"
    assert persica.expects_infra_rank


def test_placeholder_values_become_none(iucn_csv):
    manta = list(iter_query_taxa(read_query_frame(iucn_csv)))[2]
    assert manta.infra_type is None
    assert manta.infra_epithet is None


def test_darwin_core_headers():
    frame = pl.DataFrame({"genus": ["Mobula"], "specificEpithet": ["alfredi"], "scientificNameAuthorship": [" "]})
    taxon = next(iter_query_taxa(frame))
    assert taxon.genus == "Mobula"
    assert taxon.species == "alfredi"
    assert taxon.authority is None
    assert taxon.scientific_name is None


def test_darwin_core_species_row_prefers_accepted_species():
    queries = pl.DataFrame({"scientificName": ["Aus bus"], "taxonRank": ["species"]})
    taxon = next(iter_query_taxa(queries))
    assert taxon.infra_type is None
    assert not taxon.expects_infra_rank

    reference = pl.DataFrame({
        "ID": ["a", "b"],
        "scientificName": ["Aus bus", "Aus bus"],
        "status": ["accepted", "synonym"],
        "rank": ["species", "variety"],
    })
    result = MatchResolver(TaxonStore(FrameTaxonSource(reference))).resolve(taxon)
    assert result.primary.id == "a"


def test_tsv_and_parquet(tmp_path):
    frame = pl.DataFrame({"scientificName": ["Lynx lynx"], "id": [42]})
    tsv = tmp_path / "names.tsv"
    frame.write_csv(tsv, separator="\t")
    parquet = tmp_path / "names.parquet"
    frame.write_parquet(parquet)

    for path in (tsv, parquet):
        taxon = next(iter_query_taxa(read_query_frame(path)))
        assert taxon.scientific_name == "Lynx lynx"
        assert taxon.source_id == "42"


def test_frame_without_name_columns():
    frame = pl.DataFrame({"family": ["Felidae"]})
    with pytest.raises(InputError):
        list(iter_query_taxa(frame))


def test_missing_file(tmp_path):
    with pytest.raises(InputError):
        read_query_frame(tmp_path / "absent.csv")


def test_unsupported_extension(tmp_path):
    path = tmp_path / "names.json"
    path.write_text("[]")
    with pytest.raises(InputError):
        read_query_frame(path)
