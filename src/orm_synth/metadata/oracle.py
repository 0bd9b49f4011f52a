"""
Oracle metadata source using oracledb.

Extracts column definitions, primary keys, foreign keys and unique indexes
from the Oracle data dictionary views:
- ALL_TABLES / ALL_USERS
- ALL_TAB_COLUMNS
- ALL_CONSTRAINTS / ALL_CONS_COLUMNS
- ALL_INDEXES / ALL_IND_COLUMNS
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from orm_synth.metadata.source import MetadataSource
from orm_synth.models import ColumnRow, ImportedFkRow, SqlType

logger = logging.getLogger(__name__)


# Oracle type -> SQL type code, as the Oracle driver reports them
ORACLE_TYPE_MAP = {
    "NUMBER": SqlType.NUMERIC,
    "INTEGER": SqlType.NUMERIC,
    "FLOAT": SqlType.FLOAT,
    "BINARY_FLOAT": SqlType.REAL,
    "BINARY_DOUBLE": SqlType.DOUBLE,
    "VARCHAR2": SqlType.VARCHAR,
    "NVARCHAR2": SqlType.NVARCHAR,
    "CHAR": SqlType.CHAR,
    "NCHAR": SqlType.NCHAR,
    "CLOB": SqlType.CLOB,
    "NCLOB": SqlType.NCLOB,
    "DATE": SqlType.TIMESTAMP,  # Oracle DATE includes time
    "TIMESTAMP": SqlType.TIMESTAMP,
    "TIMESTAMP WITH TIME ZONE": SqlType.TIMESTAMP_WITH_TIMEZONE,
    "TIMESTAMP WITH LOCAL TIME ZONE": SqlType.TIMESTAMP,
    "RAW": SqlType.VARBINARY,
    "BLOB": SqlType.BLOB,
    "LONG": SqlType.LONGVARCHAR,
    "LONG RAW": SqlType.LONGVARBINARY,
}

_PRECISION = re.compile(r"\(\d+\)")


def oracle_type_code(data_type: str, precision: Optional[int], scale: Optional[int]) -> int:
    """Map an ALL_TAB_COLUMNS data type to a SQL type code."""
    normalized = _PRECISION.sub("", data_type or "").upper().strip()
    code = ORACLE_TYPE_MAP.get(normalized, SqlType.OTHER)

    # Adjust type based on precision/scale for NUMBER
    if normalized == "NUMBER" and scale == 0 and precision is not None:
        code = SqlType.INTEGER if precision <= 9 else SqlType.BIGINT

    return int(code)


class OracleMetadataSource(MetadataSource):
    """
    Metadata boundary over an open oracledb connection.

    The schema is the table owner; when omitted the session's current schema
    is used. Oracle has no catalogs.
    """

    def __init__(self, connection: Any):
        """
        Initialize the source.

        Args:
            connection: Open ``oracledb`` connection (owned by the caller)
        """
        self._conn = connection
        self._current_schema: Optional[str] = None

    @property
    def product_name(self) -> str:
        return "Oracle"

    def list_schemas(self) -> List[str]:
        return [row[0] for row in self._fetch("""
            SELECT username
            FROM all_users
            ORDER BY username
        """)]

    def list_tables(self, catalog: Optional[str], schema: Optional[str]) -> List[str]:
        return [row[0] for row in self._fetch("""
            SELECT table_name
            FROM all_tables
            WHERE owner = :owner
            ORDER BY table_name
        """, owner=self._owner(schema))]

    def get_columns(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[ColumnRow]:
        rows = self._fetch("""
            SELECT
                column_name,
                data_type,
                nullable,
                data_precision,
                data_scale,
                data_default,
                identity_column
            FROM all_tab_columns
            WHERE owner = :owner AND table_name = :table_name
            ORDER BY column_id
        """, owner=self._owner(schema), table_name=table)

        columns = []
        for col_name, data_type, nullable, precision, scale, default, identity in rows:
            columns.append(ColumnRow(
                name=col_name,
                type_code=oracle_type_code(data_type, precision, scale),
                type_name=data_type,
                nullable=nullable == "Y",
                default=default.strip() if default else None,
                auto_increment="YES" if identity == "YES" else "NO",
            ))
        return columns

    def get_primary_keys(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[str]:
        return [row[0] for row in self._fetch("""
            SELECT cc.column_name
            FROM all_constraints c
            JOIN all_cons_columns cc
                ON c.owner = cc.owner
                AND c.constraint_name = cc.constraint_name
            WHERE c.owner = :owner
                AND c.table_name = :table_name
                AND c.constraint_type = 'P'
            ORDER BY cc.position
        """, owner=self._owner(schema), table_name=table)]

    def get_imported_keys(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[ImportedFkRow]:
        rows = self._fetch("""
            SELECT
                c.constraint_name,
                cc.column_name,
                rc.table_name as ref_table,
                rcc.column_name as ref_column,
                cc.position
            FROM all_constraints c
            JOIN all_cons_columns cc
                ON c.owner = cc.owner
                AND c.constraint_name = cc.constraint_name
            JOIN all_constraints rc
                ON c.r_owner = rc.owner
                AND c.r_constraint_name = rc.constraint_name
            JOIN all_cons_columns rcc
                ON rc.owner = rcc.owner
                AND rc.constraint_name = rcc.constraint_name
                AND cc.position = rcc.position
            WHERE c.owner = :owner
                AND c.table_name = :table_name
                AND c.constraint_type = 'R'
            ORDER BY c.constraint_name, cc.position
        """, owner=self._owner(schema), table_name=table)

        return [
            ImportedFkRow(
                fk_name=fk_name,
                local_column=column,
                target_table=ref_table,
                target_column=ref_column,
                key_seq=int(position or 1),
            )
            for fk_name, column, ref_table, ref_column, position in rows
        ]

    def get_unique_index_columns(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[Tuple[str, ...]]:
        rows = self._fetch("""
            SELECT i.index_name, ic.column_name
            FROM all_indexes i
            JOIN all_ind_columns ic
                ON i.owner = ic.index_owner
                AND i.index_name = ic.index_name
            WHERE i.table_owner = :owner
                AND i.table_name = :table_name
                AND i.uniqueness = 'UNIQUE'
            ORDER BY i.index_name, ic.column_position
        """, owner=self._owner(schema), table_name=table)

        indexes: Dict[str, List[str]] = {}
        for index_name, column in rows:
            indexes.setdefault(index_name, []).append(column)
        return [tuple(cols) for cols in indexes.values()]

    def _owner(self, schema: Optional[str]) -> str:
        if schema:
            return schema.upper()
        if self._current_schema is None:
            rows = self._fetch("SELECT SYS_CONTEXT('USERENV', 'CURRENT_SCHEMA') FROM dual")
            self._current_schema = rows[0][0]
            logger.debug(f"Using current schema {self._current_schema}")
        return self._current_schema

    def _fetch(self, sql: str, **binds: Any) -> List[tuple]:
        cursor = self._conn.cursor()
        try:
            cursor.execute(sql, binds)
            return list(cursor)
        finally:
            cursor.close()
