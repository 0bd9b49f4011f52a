"""
SQLAlchemy metadata source.

Reads table metadata through the SQLAlchemy runtime inspector, so any dialect
SQLAlchemy can reflect (PostgreSQL, MySQL/MariaDB, SQL Server, Oracle,
SQLite, ...) is supported. The engine or connection is created and owned by
the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import exc, inspect
from sqlalchemy import types as sqltypes
from sqlalchemy.engine import Connection, Engine

from orm_synth.metadata.introspector import synthesize_fk_name
from orm_synth.metadata.source import MetadataSource
from orm_synth.models import ColumnRow, ImportedFkRow, SqlType

logger = logging.getLogger(__name__)


def sql_type_code(col_type: sqltypes.TypeEngine) -> int:
    """Map a reflected SQLAlchemy type to the SQL type code drivers report."""
    if isinstance(col_type, sqltypes.Boolean):
        return SqlType.BOOLEAN
    if isinstance(col_type, sqltypes.BigInteger):
        return SqlType.BIGINT
    if isinstance(col_type, sqltypes.SmallInteger):
        return SqlType.SMALLINT
    if isinstance(col_type, sqltypes.Integer):
        return SqlType.INTEGER
    if isinstance(col_type, sqltypes.Float):
        return SqlType.DOUBLE
    if isinstance(col_type, sqltypes.DECIMAL):
        return SqlType.DECIMAL
    if isinstance(col_type, sqltypes.Numeric):
        return SqlType.NUMERIC
    if isinstance(col_type, sqltypes.DateTime):
        return SqlType.TIMESTAMP_WITH_TIMEZONE if col_type.timezone else SqlType.TIMESTAMP
    if isinstance(col_type, sqltypes.Date):
        return SqlType.DATE
    if isinstance(col_type, sqltypes.Time):
        return SqlType.TIME
    if isinstance(col_type, sqltypes.CLOB):
        return SqlType.CLOB
    if isinstance(col_type, sqltypes.Text):
        return SqlType.LONGVARCHAR
    if isinstance(col_type, (sqltypes.CHAR, sqltypes.NCHAR)):
        return SqlType.CHAR
    if isinstance(col_type, sqltypes.String):
        return SqlType.VARCHAR
    if isinstance(col_type, sqltypes.BLOB):
        return SqlType.BLOB
    if isinstance(col_type, sqltypes.VARBINARY):
        return SqlType.VARBINARY
    if isinstance(col_type, (sqltypes.LargeBinary, sqltypes.BINARY)):
        return SqlType.BINARY
    if isinstance(col_type, sqltypes.ARRAY):
        return SqlType.ARRAY
    return SqlType.OTHER


class SqlAlchemyMetadataSource(MetadataSource):
    """
    Metadata boundary over a SQLAlchemy Engine or Connection.

    SQLAlchemy has no catalog level: ``catalog`` arguments are ignored and
    ``schema`` is passed through to the inspector (None = default schema).
    The primary key counts as a unique index, as it does in driver index
    listings.
    """

    def __init__(self, bind: Union[Engine, Connection]):
        self.bind = bind
        self._inspector = None

    @property
    def inspector(self):
        """Lazy-loaded runtime inspector."""
        if self._inspector is None:
            self._inspector = inspect(self.bind)
            logger.debug("Created database inspector")
        return self._inspector

    @property
    def product_name(self) -> str:
        dialect = self.bind.dialect
        if getattr(dialect, "is_mariadb", False):
            return "mariadb"
        return dialect.name

    def list_schemas(self) -> List[str]:
        return list(self.inspector.get_schema_names())

    def list_tables(self, catalog: Optional[str], schema: Optional[str]) -> List[str]:
        return list(self.inspector.get_table_names(schema=schema))

    def get_columns(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[ColumnRow]:
        rows = []
        for col in self.inspector.get_columns(table, schema=schema):
            col_type = col["type"]
            default = col.get("default")
            rows.append(ColumnRow(
                name=col["name"],
                type_code=int(sql_type_code(col_type)),
                type_name=self._type_name(col_type),
                nullable=bool(col.get("nullable", True)),
                default=str(default) if default is not None else None,
                auto_increment=self._auto_increment_flag(col),
            ))
        return rows

    def get_primary_keys(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[str]:
        pk = self.inspector.get_pk_constraint(table, schema=schema) or {}
        return list(pk.get("constrained_columns") or [])

    def get_imported_keys(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[ImportedFkRow]:
        rows = []
        for fk in self.inspector.get_foreign_keys(table, schema=schema):
            local_cols = fk["constrained_columns"]
            # unnamed constraints still have to group as one key
            fk_name = fk.get("name") or synthesize_fk_name(fk["referred_table"], "_".join(local_cols))
            pairs = zip(local_cols, fk["referred_columns"])
            for seq, (local_col, ref_col) in enumerate(pairs, start=1):
                rows.append(ImportedFkRow(
                    fk_name=fk_name,
                    local_column=local_col,
                    target_table=fk["referred_table"],
                    target_column=ref_col,
                    key_seq=seq,
                ))
        return rows

    def get_unique_index_columns(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[Tuple[str, ...]]:
        unique: List[Tuple[str, ...]] = []

        pk_columns = self.get_primary_keys(catalog, schema, table)
        if pk_columns:
            unique.append(tuple(pk_columns))

        for index in self.inspector.get_indexes(table, schema=schema):
            if index.get("unique"):
                unique.append(tuple(c for c in index.get("column_names", []) if c is not None))

        try:
            constraints = self.inspector.get_unique_constraints(table, schema=schema)
        except NotImplementedError:
            logger.debug(f"Dialect {self.bind.dialect.name} does not report unique constraints")
            constraints = []
        for constraint in constraints:
            unique.append(tuple(constraint.get("column_names", [])))

        return unique

    def _type_name(self, col_type: sqltypes.TypeEngine) -> str:
        try:
            return col_type.compile(dialect=self.bind.dialect)
        except (exc.CompileError, NotImplementedError):
            return type(col_type).__name__

    @staticmethod
    def _auto_increment_flag(col: Dict[str, Any]) -> str:
        if col.get("identity") or col.get("autoincrement") is True:
            return "YES"
        return ""
