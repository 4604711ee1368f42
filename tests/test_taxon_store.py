import polars as pl
import pytest

from taxonalign.cancellation import CancellationToken
from taxonalign.exceptions import OperationCancelledError, UnsupportedSourceError
from taxonalign.store import FrameTaxonSource, SqlTaxonSource, TaxonStore, open_taxon_source
from taxonalign.store.schema import ColumnMapping, Criterion, MatchOp


def chain_names(chain):
    return [record.scientific_name for record in chain]


class TestColumnMapping:
    def test_first_present_candidate_wins(self):
        mapping = ColumnMapping.resolve(["genus", "genericName"], {"genus": ("genericName", "genus")})
        assert mapping.column_for("genus") == "genericName"

    def test_match_is_case_insensitive_and_keeps_table_spelling(self):
        mapping = ColumnMapping.resolve(["ScientificName", "Id"])
        assert mapping.column_for("scientific_name") == "ScientificName"
        assert mapping.column_for("id") == "Id"

    def test_absent_columns_map_to_none(self):
        mapping = ColumnMapping.resolve(["ID", "scientificName"])
        assert mapping.column_for("accepted_name_usage_id") is None
        assert not mapping.is_mapped("parent_id")
        assert "parent_id" in mapping.unmapped_fields

    def test_missing_required_column_is_logged(self, caplog):
        ColumnMapping.resolve(["scientificName"], required=("id", "scientific_name"), table_name="names")
        assert "no column for required field 'id'" in caplog.text

    def test_criterion_helpers(self):
        assert Criterion.equals("genus", "Panthera").op is MatchOp.EQUALS
        assert Criterion.equals("genus", "Panthera", ignore_case=True).op is MatchOp.EQUALS_IGNORE_CASE
        assert Criterion.blank("genus").op is MatchOp.BLANK
        assert Criterion.not_blank("genus").value is None


class TestFindByScientificName:
    def test_exact_match(self, store):
        records = store.find_by_scientific_name("Panthera leo")
        assert [r.id for r in records] == ["8"]
        assert records[0].authorship == "(Linnaeus, 1758)"
        assert records[0].genus == "Panthera"
        assert records[0].class_ == "Mammalia"

    def test_case_insensitive_and_trimmed(self, store):
        records = store.find_by_scientific_name("  panthera LEO ")
        assert [r.id for r in records] == ["8"]

    def test_non_ascii_name_matches_itself(self, store):
        assert [r.id for r in store.find_by_scientific_name("Œnanthe crocata")] == ["50"]
        assert [r.id for r in store.find_by_components("Œnanthe", "crocata")] == ["50"]

    def test_returns_every_usage_in_table_order(self, store):
        records = store.find_by_scientific_name("Lynx lynx")
        assert [r.id for r in records] == ["15", "16"]

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_blank_input_returns_empty(self, store, name):
        assert store.find_by_scientific_name(name) == []
        assert store.cache_info()["scientific_name"]["size"] == 0

    def test_no_match(self, store):
        assert store.find_by_scientific_name("Unknownus nullus") == []

    def test_rows_without_id_are_skipped(self, store):
        assert store.find_by_scientific_name("Nullius nominis") == []

    def test_repeat_lookup_served_from_cache(self, store):
        first = store.find_by_scientific_name("Panthera leo")
        second = store.find_by_scientific_name("Panthera leo")
        assert first == second
        info = store.cache_info()["scientific_name"]
        assert info["hits"] == 1
        assert info["size"] == 1

    def test_returned_list_is_a_copy(self, store):
        store.find_by_scientific_name("Lynx lynx").clear()
        assert len(store.find_by_scientific_name("Lynx lynx")) == 2


class TestFindByComponents:
    def test_species_level_match(self, store):
        records = store.find_by_components("Mobula", "alfredi")
        assert [r.id for r in records] == ["11"]
        assert records[0].is_accepted

    def test_unknown_infra_epithet_returns_empty(self, store):
        assert store.find_by_components("Mobula", "alfredi", "tarapacana") == []

    def test_species_query_excludes_subspecies(self, store):
        records = store.find_by_components("Panthera", "leo")
        assert [r.id for r in records] == ["8"]

    def test_infra_epithet_match(self, store):
        records = store.find_by_components("panthera", "LEO", "Persica")
        assert [r.id for r in records] == ["9"]

    @pytest.mark.parametrize("genus,species", [(None, "leo"), ("Panthera", None), (" ", "leo")])
    def test_blank_genus_or_species_returns_empty(self, store, genus, species):
        assert store.find_by_components(genus, species) == []

    def test_cache_key_ignores_case(self, store):
        store.find_by_components("Mobula", "alfredi")
        store.find_by_components("MOBULA", "Alfredi")
        info = store.cache_info()["components"]
        assert info["size"] == 1
        assert info["hits"] == 1


class TestGetById:
    def test_found(self, store):
        record = store.get_by_id("10")
        assert record.scientific_name == "Felis leo"
        assert record.is_synonym
        assert record.accepted_name_usage_id == "8"

    def test_missing_id_is_memoized(self, store):
        assert store.get_by_id("999") is None
        assert store.get_by_id("999") is None
        assert store.cache_info()["id"]["hits"] == 1

    def test_blank_id(self, store):
        assert store.get_by_id("  ") is None

    def test_row_with_blank_name_is_not_materialized(self, store):
        assert store.get_by_id("30") is None

    def test_rows_from_other_lookups_are_indexed(self, store):
        store.find_by_scientific_name("Lynx lynx")
        before = store.cache_info()["id"]
        assert before["size"] == 2

        record = store.get_by_id("16")
        assert record.status == "accepted"
        assert store.cache_info()["id"]["hits"] == before["hits"] + 1


    def test_memoized_miss_replaced_by_materialized_row(self):
        frame = pl.DataFrame({"ID": [" 7 "], "scientificName": ["Aus bus"]})
        store = TaxonStore(FrameTaxonSource(frame))

        assert store.get_by_id("7") is None
        record = store.find_by_scientific_name("Aus bus")[0]
        assert record.id == "7"
        assert store.get_by_id("7") == record


class TestParentChain:
    def test_chain_is_root_first(self, store):
        record = store.get_by_id("8")
        chain = store.get_parent_chain(record)
        assert chain_names(chain) == [
            "Biota", "Animalia", "Chordata", "Mammalia", "Carnivora", "Felidae", "Panthera", "Panthera leo",
        ]

    def test_ancestor_prefixes_are_memoized(self, store):
        store.get_parent_chain(store.get_by_id("8"))
        hits = store.cache_info()["parent_chain"]["hits"]

        chain = store.get_parent_chain(store.get_by_id("6"))
        assert chain_names(chain)[-1] == "Felidae"
        assert len(chain) == 6
        assert store.cache_info()["parent_chain"]["hits"] == hits + 1

    def test_walk_splices_cached_ancestor_chain(self, store):
        store.get_parent_chain(store.get_by_id("8"))
        chain = store.get_parent_chain(store.get_by_id("9"))
        assert chain_names(chain)[-3:] == ["Panthera", "Panthera leo", "Panthera leo persica"]
        assert chain[0].scientific_name == "Biota"

    def test_cycle_terminates(self, store):
        chain = store.get_parent_chain(store.get_by_id("20"))
        assert [r.id for r in chain] == ["21", "20"]

        # The cycle's other member still terminates and is not poisoned by the first walk
        other = store.get_parent_chain(store.get_by_id("21"))
        assert [r.id for r in other] == ["20", "21"]

    def test_unresolvable_parent_stops_walk(self, store):
        chain = store.get_parent_chain(store.get_by_id("40"))
        assert chain_names(chain) == ["Orphanus solus"]

    def test_record_without_parent(self, store):
        record = store.get_by_id("1")
        assert chain_names(store.get_parent_chain(record)) == ["Biota"]

    def test_none_record_raises(self, store):
        with pytest.raises(ValueError):
            store.get_parent_chain(None)


class TestCancellation:
    def test_cancelled_lookup_raises_and_leaves_cache_empty(self, store):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            store.find_by_scientific_name("Panthera leo", token)
        assert store.cache_info()["scientific_name"]["size"] == 0
        assert store.find_by_scientific_name("Panthera leo")[0].id == "8"

    def test_cancelled_chain_walk(self, store):
        record = store.get_by_id("8")
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            store.get_parent_chain(record, token)
        assert store.cache_info()["parent_chain"]["size"] == 0


class TestSchemaFallback:
    def test_alternate_column_names(self):
        frame = pl.DataFrame(
            {
                "taxonID": ["a", "b"],
                "scientificName": ["Mobula alfredi", "Manta alfredi"],
                "taxonomicStatus": ["accepted", "synonym"],
                "taxonRank": ["species", "species"],
                "genus": ["Mobula", "Manta"],
                "species": ["alfredi", "alfredi"],
                "division": ["Chordata", "Chordata"],
            }
        )
        store = TaxonStore(FrameTaxonSource(frame))

        records = store.find_by_components("Manta", "alfredi")
        assert [r.id for r in records] == ["b"]
        assert records[0].status == "synonym"
        assert records[0].phylum == "Chordata"
        assert records[0].accepted_name_usage_id is None
        assert records[0].parent_id is None

    def test_missing_infra_column_reads_as_null(self):
        frame = pl.DataFrame({"ID": ["1"], "scientificName": ["Mobula alfredi"], "genericName": ["Mobula"],
                              "specificEpithet": ["alfredi"]})
        store = TaxonStore(FrameTaxonSource(frame))
        assert [r.id for r in store.find_by_components("Mobula", "alfredi")] == ["1"]
        assert store.find_by_components("Mobula", "alfredi", "x") == []

    def test_missing_required_column_returns_no_rows(self):
        frame = pl.DataFrame({"scientificName": ["Mobula alfredi"]})
        store = TaxonStore(FrameTaxonSource(frame))
        assert store.find_by_scientific_name("Mobula alfredi") == []

    def test_numeric_columns_are_read_as_text(self):
        frame = pl.DataFrame({"ID": [1, 2], "parentID": [None, 1], "scientificName": ["Aves", "Corvus"]})
        store = TaxonStore(FrameTaxonSource(frame))
        record = store.find_by_scientific_name("Corvus")[0]
        assert record.id == "2"
        assert record.parent_id == "1"
        assert chain_names(store.get_parent_chain(record)) == ["Aves", "Corvus"]


class TestOpenTaxonSource:
    def test_sqlite_file(self, reference_sqlite):
        source = open_taxon_source(reference_sqlite)
        assert isinstance(source, SqlTaxonSource)
        store = TaxonStore(source)
        assert store.get_by_id("11").scientific_name == "Mobula alfredi"

    def test_csv_file(self, reference_csv):
        source = open_taxon_source(reference_csv)
        assert isinstance(source, FrameTaxonSource)
        assert TaxonStore(source).find_by_scientific_name("Felis leo")[0].id == "10"

    def test_parquet_file(self, tmp_path, reference_frame):
        path = tmp_path / "nameusage.parquet"
        reference_frame.write_parquet(path)
        store = TaxonStore(open_taxon_source(path))
        assert store.get_by_id("16").status == "accepted"

    def test_sqlalchemy_url(self, reference_sqlite):
        source = open_taxon_source(f"sqlite:///{reference_sqlite}")
        assert isinstance(source, SqlTaxonSource)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            open_taxon_source(tmp_path / "absent.sqlite")

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "names.xlsx"
        path.write_text("")
        with pytest.raises(UnsupportedSourceError):
            open_taxon_source(path)
