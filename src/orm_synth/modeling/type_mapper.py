"""
Mapping from vendor SQL type information to abstract scalar types.
"""

from __future__ import annotations

from typing import Any, Optional

from orm_synth.models import AbstractType, SqlType, Vendor


SQL_TYPE_MAP = {
    SqlType.VARCHAR: AbstractType.STRING,
    SqlType.LONGVARCHAR: AbstractType.STRING,
    SqlType.CHAR: AbstractType.STRING,
    SqlType.CLOB: AbstractType.STRING,
    SqlType.INTEGER: AbstractType.INT32,
    SqlType.SMALLINT: AbstractType.INT32,
    SqlType.BIGINT: AbstractType.INT64,
    SqlType.DECIMAL: AbstractType.DECIMAL,
    SqlType.NUMERIC: AbstractType.DECIMAL,
    SqlType.BIT: AbstractType.BOOLEAN,
    SqlType.BOOLEAN: AbstractType.BOOLEAN,
    SqlType.TIMESTAMP: AbstractType.TIMESTAMP_TZ,
    SqlType.TIMESTAMP_WITH_TIMEZONE: AbstractType.TIMESTAMP_TZ,
    SqlType.DATE: AbstractType.DATE,
    SqlType.TIME: AbstractType.TIME,
    SqlType.BINARY: AbstractType.BINARY,
    SqlType.VARBINARY: AbstractType.BINARY,
    SqlType.BLOB: AbstractType.BINARY,
}

JSON_TYPE_NAMES = frozenset({"json", "jsonb"})


def is_json_column(type_name: Optional[str], vendor: Vendor) -> bool:
    """True for JSON/JSONB columns of the JSON-native vendor."""
    tn = (type_name or "").strip().lower()
    return vendor == Vendor.POSTGRES and tn in JSON_TYPE_NAMES


def map_sql_type(
    type_code: Any,
    type_name: Optional[str],
    nullable: bool,
    vendor: Vendor,
) -> AbstractType:
    """
    Map vendor SQL type info to an abstract type.

    Total and deterministic: codes it does not recognize, including values
    that are not integers at all, map to AbstractType.OBJECT.

    Args:
        type_code: SQL type code as reported by the driver
        type_name: Vendor type name (e.g. "jsonb", "int4")
        nullable: Column nullability (does not change the mapped type)
        vendor: Database vendor

    Returns:
        The abstract scalar type
    """
    if is_json_column(type_name, vendor):
        return AbstractType.JSON_MAP

    if isinstance(type_code, bool) or not isinstance(type_code, int):
        return AbstractType.OBJECT

    return SQL_TYPE_MAP.get(type_code, AbstractType.OBJECT)
