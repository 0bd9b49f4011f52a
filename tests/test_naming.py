"""Tests for entity/field naming and override loading."""

import logging

import pytest

from orm_synth.errors import OverrideLoadError
from orm_synth.models import NamingOverrides
from orm_synth.modeling.naming import (
    NamingResolver,
    derive_entity_name,
    derive_field_name,
    load_naming_overrides,
    load_naming_overrides_or_default,
    lower_first,
    pluralize,
    singularize,
    split_camel_case,
    split_into_tokens,
)


class TestTokenizing:
    """Tests for table-name tokenization."""

    def test_separator_split(self):
        """Test splitting on separators."""
        assert split_into_tokens("intervention_subcategories") == ["intervention", "subcategories"]
        assert split_into_tokens("tbl-Order Items") == ["tbl", "Order", "Items"]

    def test_camel_case_split(self):
        """Test splitting on camel-case boundaries."""
        assert split_camel_case("IncidentsMaintenance") == ["Incidents", "Maintenance"]
        assert split_camel_case("orderItems") == ["order", "Items"]

    def test_acronym_followed_by_word(self):
        """Test an acronym followed by a capitalized word."""
        assert split_camel_case("PBSCode") == ["PBS", "Code"]

    def test_digit_to_letter(self):
        """Test a digit followed by a letter."""
        assert split_camel_case("order2items") == ["order2", "items"]

    def test_single_token(self):
        """Test a name with no boundaries."""
        assert split_into_tokens("incidentsmaintenance") == ["incidentsmaintenance"]
        assert split_into_tokens("") == []


class TestInflection:
    """Tests for the approximate singular/plural heuristics."""

    @pytest.mark.parametrize("plural,singular", [
        ("companies", "company"),
        ("batches", "batch"),
        ("wishes", "wish"),
        ("classes", "class"),
        ("boxes", "box"),
        ("buzzes", "buzz"),
        ("incidents", "incident"),
        ("ORDERS", "ORDER"),
        ("data", "data"),
        ("s", "s"),
    ])
    def test_singularize(self, plural, singular):
        """Test singularizing plural tokens."""
        assert singularize(plural) == singular

    def test_singularize_short_words(self):
        """Test that short words are left alone."""
        # too short for the "ies" rule, falls through to dropping "s"
        assert singularize("ies") == "ie"

    def test_pluralize(self):
        """Test appending a plural suffix."""
        assert pluralize("order") == "orders"
        assert pluralize("address") == "address"
        assert pluralize("STATUS") == "STATUS"
        assert pluralize("") == ""

    def test_lower_first(self):
        assert lower_first("CustomerOrder") == "customerOrder"
        assert lower_first(None) is None


class TestEntityNames:
    """Tests for entity-name derivation."""

    @pytest.mark.parametrize("table,entity", [
        ("intervention_subcategories", "InterventionSubcategory"),
        ("IncidentsMaintenance", "IncidentMaintenance"),
        ("PBSCode", "PbsCode"),
        ("CUSTOMER_ORDERS", "CustomerOrder"),
        ("ORDERS_archive", "OrderArchive"),
        ("XML_files", "XmlFile"),
        ("users", "User"),
        ("Orders", "Order"),
        ("order2items", "Order2Item"),
        ("tbl-Order Items", "TblOrderItem"),
    ])
    def test_derived(self, table, entity):
        """Test derived entity names."""
        assert NamingResolver().resolve_entity_name(table) == entity

    def test_run_on_lowercase_is_one_token(self):
        """Test that a run-on lowercase name stays one token."""
        assert derive_entity_name("incidentsmaintenance") == "Incidentsmaintenance"

    def test_blank_passes_through(self):
        """Test that blank table names pass through."""
        assert derive_entity_name(None) is None
        assert derive_entity_name("") == ""
        assert derive_entity_name("  ") == "  "

    def test_deterministic(self):
        """Test that derivation is deterministic."""
        names = ["intervention_subcategories", "PBSCode", "IncidentsMaintenance"]
        assert [derive_entity_name(n) for n in names] == [derive_entity_name(n) for n in names]


class TestFieldNames:
    """Tests for field-name derivation."""

    @pytest.mark.parametrize("column,field_name", [
        ("problem_id", "problemId"),
        ("ASSET_CODE", "assetCode"),
        ("order date", "orderDate"),
        ("Customer-Name", "customerName"),
        ("PBSCode", "pBSCode"),
        ("CreatedAt", "createdAt"),
        ("id", "id"),
    ])
    def test_derived(self, column, field_name):
        """Test derived field names."""
        assert NamingResolver().resolve_column_name("any_table", column) == field_name

    def test_idempotent_without_separator(self):
        """Test idempotence for names without separators."""
        once = derive_field_name("PBSCode")
        assert once == "pBSCode"
        assert derive_field_name(once) == "pBSCode"

    def test_idempotent_after_camel_fold(self):
        """Test idempotence after camel folding."""
        once = derive_field_name("problem_id")
        assert derive_field_name(once) == once

    def test_blank_passes_through(self):
        """Test that blank column names pass through."""
        assert derive_field_name(None) is None
        assert derive_field_name("") == ""
        assert derive_field_name("___") == "___"


class TestOverrides:
    """Tests for override precedence in NamingResolver."""

    def test_column_override(self):
        """Test that a column override replaces the derived name."""
        resolver = NamingResolver(NamingOverrides.from_dict({
            "problems": {"columns": {"problem_id": "id"}},
        }))
        assert resolver.resolve_column_name("problems", "problem_id") == "id"
        assert resolver.resolve_column_name("PROBLEMS", "problem_id") == "id"
        assert resolver.resolve_column_name("problems", "problem_type") == "problemType"
        assert resolver.resolve_column_name("other", "problem_id") == "problemId"

    def test_column_override_key_is_exact(self):
        """Test that column override keys match exactly."""
        resolver = NamingResolver(NamingOverrides.from_dict({
            "problems": {"columns": {"problem_id": "id"}},
        }))
        assert resolver.resolve_column_name("problems", "PROBLEM_ID") == "problemId"

    def test_entity_override(self):
        """Test an entity name override."""
        resolver = NamingResolver(NamingOverrides.from_dict({
            "Problems": {"entityName": "Issue"},
        }))
        assert resolver.resolve_entity_name("problems") == "Issue"
        assert resolver.resolve_entity_name("problem_types") == "ProblemType"

    def test_blank_entity_override_is_ignored(self):
        """Test that a blank entity override is ignored."""
        resolver = NamingResolver(NamingOverrides.from_dict({
            "problems": {"entityName": "  ", "columns": {"problem_id": "id"}},
        }))
        assert resolver.resolve_entity_name("problems") == "Problem"

    def test_resolve_field_names(self, shop_source):
        """Test resolving every field name of a model."""
        from orm_synth.metadata.introspector import SchemaIntrospector
        from orm_synth.modeling.builder import ModelBuilder

        introspector = SchemaIntrospector(shop_source)
        model = ModelBuilder(introspector.vendor).build(
            introspector.introspect(None, "public", "orders")
        )
        assert NamingResolver().resolve_field_names(model) == {
            "id": "id",
            "customer_id": "customerId",
            "placed_at": "placedAt",
            "total": "total",
        }


class TestOverrideLoading:
    """Tests for loading the override document."""

    def test_nested_tables_document(self, tmp_path):
        """Test a document with a top-level tables key."""
        path = tmp_path / "naming.yaml"
        path.write_text(
            "tables:\n"
            "  problems:\n"
            "    entityName: Issue\n"
            "    columns:\n"
            "      problem_id: id\n"
        )
        overrides = load_naming_overrides(path)

        assert len(overrides) == 1
        assert overrides.get("problems").entity_name == "Issue"
        assert overrides.get("problems").columns["problem_id"] == "id"

    def test_bare_table_mapping(self, tmp_path):
        """Test a bare table mapping."""
        path = tmp_path / "naming.json"
        path.write_text('{"problems": {"columns": {"problem_id": "id"}}}')
        overrides = load_naming_overrides(path)

        resolver = NamingResolver(overrides)
        assert resolver.resolve_column_name("problems", "problem_id") == "id"

    def test_table_literally_named_tables(self, tmp_path):
        """Test a table that is literally named tables."""
        path = tmp_path / "naming.yaml"
        path.write_text("tables:\n  columns:\n    tbl_id: id\n")
        overrides = load_naming_overrides(path)

        assert overrides.get("tables").columns["tbl_id"] == "id"

    def test_empty_file(self, tmp_path):
        """Test that an empty file means no overrides."""
        path = tmp_path / "naming.yaml"
        path.write_text("")
        assert len(load_naming_overrides(path)) == 0

    def test_missing_file(self, tmp_path):
        """Test a missing override file."""
        with pytest.raises(OverrideLoadError, match="not found"):
            load_naming_overrides(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test an unparsable override file."""
        path = tmp_path / "naming.yaml"
        path.write_text("problems: [unclosed\n")
        with pytest.raises(OverrideLoadError):
            load_naming_overrides(path)

    def test_root_must_be_mapping(self, tmp_path):
        """Test that the document root must be a mapping."""
        path = tmp_path / "naming.yaml"
        path.write_text("- problems\n- incidents\n")
        with pytest.raises(OverrideLoadError, match="must be a mapping"):
            load_naming_overrides(path)

    def test_entry_must_be_mapping(self, tmp_path):
        """Test that a table entry must be a mapping."""
        path = tmp_path / "naming.yaml"
        path.write_text("problems: Issue\n")
        with pytest.raises(OverrideLoadError, match="problems"):
            load_naming_overrides(path)

    def test_columns_must_be_mapping(self, tmp_path):
        """Test that column overrides must be a mapping."""
        path = tmp_path / "naming.yaml"
        path.write_text("problems:\n  columns: [problem_id]\n")
        with pytest.raises(OverrideLoadError, match="Column overrides"):
            load_naming_overrides(path)

    def test_null_field_name_is_rejected(self, tmp_path):
        """Test that a column mapped to null is a malformed document."""
        path = tmp_path / "naming.yaml"
        path.write_text("problems:\n  columns:\n    problem_id: null\n")
        with pytest.raises(OverrideLoadError, match="problems.problem_id"):
            load_naming_overrides(path)

    def test_non_string_entity_name_is_rejected(self, tmp_path):
        """Test that a non-string entity name is a malformed document."""
        path = tmp_path / "naming.yaml"
        path.write_text("problems:\n  entityName: [Issue]\n")
        with pytest.raises(OverrideLoadError, match="Entity name"):
            load_naming_overrides(path)

    def test_null_field_name_falls_back_to_derived(self, tmp_path):
        """Test that a malformed column entry leaves derived names in place."""
        path = tmp_path / "naming.yaml"
        path.write_text("problems:\n  columns:\n    problem_id: null\n")
        resolver = NamingResolver(load_naming_overrides_or_default(path))

        assert resolver.resolve_column_name("problems", "problem_id") == "problemId"

    def test_default_on_failure(self, tmp_path, caplog):
        """Test falling back to no overrides when loading fails."""
        with caplog.at_level(logging.WARNING):
            overrides = load_naming_overrides_or_default(tmp_path / "missing.yaml")

        assert len(overrides) == 0
        assert "using derived names only" in caplog.text

    def test_default_without_path(self):
        assert len(load_naming_overrides_or_default(None)) == 0
