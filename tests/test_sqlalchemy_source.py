"""Tests for the SQLAlchemy metadata source against in-memory SQLite."""

import pytest
from sqlalchemy import BigInteger, Boolean, Date, DateTime, Integer, LargeBinary, Numeric, String, Text, create_engine
from sqlalchemy import types as sqltypes

from orm_synth.metadata.sqlalchemy_source import SqlAlchemyMetadataSource, sql_type_code
from orm_synth.models import Cardinality, SqlType, Vendor
from orm_synth.modeling.pipeline import ModelPipeline


@pytest.fixture
def engine(build_shop_schema):
    engine = create_engine("sqlite://")
    build_shop_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def source(engine):
    return SqlAlchemyMetadataSource(engine)


class TestSqlTypeCode:
    """Tests for SQLAlchemy type -> SQL type code mapping."""

    @pytest.mark.parametrize("col_type,expected", [
        (Integer(), SqlType.INTEGER),
        (BigInteger(), SqlType.BIGINT),
        (sqltypes.SmallInteger(), SqlType.SMALLINT),
        (Boolean(), SqlType.BOOLEAN),
        (Numeric(10, 2), SqlType.NUMERIC),
        (sqltypes.DECIMAL(10, 2), SqlType.DECIMAL),
        (sqltypes.Float(), SqlType.DOUBLE),
        (String(20), SqlType.VARCHAR),
        (sqltypes.CHAR(2), SqlType.CHAR),
        (Text(), SqlType.LONGVARCHAR),
        (sqltypes.CLOB(), SqlType.CLOB),
        (DateTime(), SqlType.TIMESTAMP),
        (DateTime(timezone=True), SqlType.TIMESTAMP_WITH_TIMEZONE),
        (Date(), SqlType.DATE),
        (sqltypes.Time(), SqlType.TIME),
        (LargeBinary(), SqlType.BINARY),
        (sqltypes.VARBINARY(16), SqlType.VARBINARY),
        (sqltypes.BLOB(), SqlType.BLOB),
        (sqltypes.NullType(), SqlType.OTHER),
    ])
    def test_mapping(self, col_type, expected):
        """Test SQLAlchemy type mapping."""
        assert sql_type_code(col_type) == expected


class TestSqlAlchemyMetadataSource:
    """Tests for reflecting metadata through the inspector."""

    def test_product_name(self, source):
        """Test the dialect product name."""
        assert source.product_name == "sqlite"
        assert Vendor.from_product_name(source.product_name) == Vendor.SQLITE

    def test_list_tables(self, source):
        assert set(source.list_tables(None, None)) == {"customers", "profiles", "orders", "bins", "lines"}

    def test_columns(self, source):
        """Test reflected column rows."""
        columns = source.get_columns(None, None, "customers")

        assert [c.name for c in columns] == ["id", "email", "active"]
        assert columns[0].type_code == SqlType.INTEGER
        assert columns[1].type_code == SqlType.VARCHAR
        assert columns[1].type_name == "VARCHAR(100)"
        assert columns[1].nullable is False
        assert columns[2].type_code == SqlType.BOOLEAN

    def test_primary_keys(self, source):
        """Test reflected primary keys."""
        assert source.get_primary_keys(None, None, "customers") == ["id"]
        assert source.get_primary_keys(None, None, "lines") == ["order_id", "line_no"]

    def test_imported_keys(self, source):
        """Test reflected foreign key rows."""
        rows = source.get_imported_keys(None, None, "lines")
        by_target = {}
        for row in rows:
            by_target.setdefault(row.target_table, []).append(row)

        (order_fk,) = by_target["orders"]
        assert (order_fk.local_column, order_fk.target_column) == ("order_id", "id")

        bin_rows = by_target["bins"]
        assert [r.local_column for r in bin_rows] == ["warehouse_id", "bin_code"]
        assert [r.key_seq for r in bin_rows] == [1, 2]
        assert len({r.fk_name for r in bin_rows}) == 1
        assert order_fk.fk_name != bin_rows[0].fk_name

    def test_unique_indexes(self, source):
        """Test unique indexes and constraints."""
        unique = source.get_unique_index_columns(None, None, "customers")
        assert ("id",) in unique
        assert ("email",) in unique

        assert ("customer_id",) in source.get_unique_index_columns(None, None, "profiles")
        assert ("customer_id",) not in source.get_unique_index_columns(None, None, "orders")

    def test_works_on_a_connection(self, engine):
        """Test reading through a Connection."""
        with engine.connect() as conn:
            source = SqlAlchemyMetadataSource(conn)
            assert source.get_primary_keys(None, None, "orders") == ["id"]


class TestPipelineOverSqlite:
    """End-to-end resolution over a reflected SQLite schema."""

    def test_resolve(self, source):
        """Test resolving the reflected schema."""
        result = ModelPipeline(source).run(tables=["customers", "profiles", "orders", "bins", "lines"])

        assert result.vendor == Vendor.SQLITE
        assert result.entity_names == ["Customer", "Profile", "Order", "Bin", "Line"]

        assert result.get_entity("orders").relations[0].cardinality == Cardinality.MANY_TO_ONE
        assert result.get_entity("profiles").relations[0].cardinality == Cardinality.ONE_TO_ONE

        inverse = result.get_entity("customers").inverse_relations
        assert [r.field_name for r in inverse] == ["profile", "orders"]

        assert result.get_entity("lines").identifier.id_class_name == "LineId"
        assert [d.table for d in result.diagnostics] == ["lines"]
