"""Shared fixtures: the shop schema as a snapshot and as SQLAlchemy tables."""

import copy

import pytest
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    ForeignKeyConstraint,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)

from orm_synth.metadata.snapshot import SnapshotMetadataSource


SHOP_SNAPSHOT = {
    "product": "PostgreSQL",
    "tables": [
        {
            "name": "customers",
            "schema": "public",
            "columns": [
                {
                    "name": "id",
                    "type": "INTEGER",
                    "type_name": "int4",
                    "nullable": False,
                    "default": "nextval('customers_id_seq'::regclass)",
                },
                {"name": "email", "type": "VARCHAR", "type_name": "varchar"},
                {"name": "preferences", "type": "OTHER", "type_name": "jsonb"},
            ],
            "primary_key": ["id"],
            "unique_indexes": [["email"]],
        },
        {
            "name": "customer_profiles",
            "schema": "public",
            "columns": [
                {"name": "id", "type": "BIGINT", "type_name": "int8", "nullable": False,
                 "auto_increment": "YES"},
                {"name": "customer_id", "type": "INTEGER", "type_name": "int4", "nullable": False},
                {"name": "bio", "type": "LONGVARCHAR", "type_name": "text"},
            ],
            "primary_key": ["id"],
            "foreign_keys": [
                {"name": "fk_profile_customer", "column": "customer_id",
                 "ref_table": "customers", "ref_column": "id"},
            ],
            "unique_indexes": [["customer_id"]],
        },
        {
            "name": "orders",
            "schema": "public",
            "columns": [
                {"name": "id", "type": "BIGINT", "type_name": "int8", "nullable": False,
                 "auto_increment": "YES"},
                {"name": "customer_id", "type": "INTEGER", "type_name": "int4", "nullable": False},
                {"name": "placed_at", "type": "TIMESTAMP", "type_name": "timestamptz"},
                {"name": "total", "type": "NUMERIC", "type_name": "numeric"},
            ],
            "primary_key": ["id"],
            "foreign_keys": [
                {"name": "fk_orders_customer", "columns": ["customer_id"],
                 "ref_table": "customers", "ref_columns": ["id"]},
            ],
        },
        {
            "name": "order_lines",
            "schema": "public",
            "columns": [
                {"name": "order_id", "type": "BIGINT", "type_name": "int8", "nullable": False},
                {"name": "line_no", "type": "INTEGER", "type_name": "int4", "nullable": False},
                {"name": "product_code", "type": "VARCHAR", "type_name": "varchar"},
                {"name": "warehouse_id", "type": "INTEGER", "type_name": "int4"},
                {"name": "bin_code", "type": "VARCHAR", "type_name": "varchar"},
            ],
            "primary_key": ["order_id", "line_no"],
            "foreign_keys": [
                {"name": "fk_lines_order", "columns": ["order_id"],
                 "ref_table": "orders", "ref_columns": ["id"]},
                {"name": "fk_lines_bin", "columns": ["warehouse_id", "bin_code"],
                 "ref_table": "bins", "ref_columns": ["warehouse_id", "code"]},
            ],
        },
    ],
}


@pytest.fixture
def shop_snapshot():
    """A fresh copy of the shop snapshot document."""
    return copy.deepcopy(SHOP_SNAPSHOT)


@pytest.fixture
def shop_source(shop_snapshot):
    """Snapshot metadata source over the shop schema."""
    return SnapshotMetadataSource(shop_snapshot)


def _create_shop_tables(engine):
    metadata = MetaData()
    Table(
        "customers", metadata,
        Column("id", Integer, primary_key=True),
        Column("email", String(100), unique=True, nullable=False),
        Column("active", Boolean),
    )
    Table(
        "profiles", metadata,
        Column("id", Integer, primary_key=True),
        Column("customer_id", Integer, ForeignKey("customers.id"), unique=True),
        Column("bio", Text),
    )
    Table(
        "orders", metadata,
        Column("id", Integer, primary_key=True),
        Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
        Column("total", Numeric(10, 2)),
        Column("placed_at", DateTime),
    )
    Table(
        "bins", metadata,
        Column("warehouse_id", Integer, primary_key=True),
        Column("code", String(20), primary_key=True),
    )
    Table(
        "lines", metadata,
        Column("order_id", Integer, ForeignKey("orders.id"), primary_key=True),
        Column("line_no", Integer, primary_key=True),
        Column("warehouse_id", Integer),
        Column("bin_code", String(20)),
        ForeignKeyConstraint(
            ["warehouse_id", "bin_code"],
            ["bins.warehouse_id", "bins.code"],
            name="fk_lines_bin",
        ),
    )
    metadata.create_all(engine)


@pytest.fixture
def build_shop_schema():
    """Callable creating the shop tables on a SQLAlchemy engine."""
    return _create_shop_tables
