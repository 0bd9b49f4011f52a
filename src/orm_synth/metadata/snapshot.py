"""
Offline metadata source backed by a schema snapshot document.

A snapshot is a YAML (or JSON) document describing tables the way a metadata
driver would report them:

    product: PostgreSQL
    tables:
      - name: customers
        schema: public
        columns:
          - {name: id, type: INTEGER, type_name: int4, nullable: false,
             default: "nextval('customers_id_seq'::regclass)"}
          - {name: email, type: VARCHAR, type_name: varchar}
        primary_key: [id]
        unique_indexes:
          - [email]
      - name: orders
        columns:
          - {name: id, type: BIGINT}
          - {name: customer_id, type: INTEGER, nullable: false}
        primary_key: [id]
        foreign_keys:
          - name: fk_orders_customer
            columns: [customer_id]
            ref_table: customers
            ref_columns: [id]

``type`` accepts a SqlType name or an integer type code. Snapshots can be
captured from any live source with ``snapshot_from_source``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from orm_synth.errors import IntrospectionError
from orm_synth.metadata.introspector import SchemaIntrospector, synthesize_fk_name
from orm_synth.metadata.source import MetadataSource
from orm_synth.models import ColumnRow, ImportedFkRow, SqlType

logger = logging.getLogger(__name__)


def _type_code(value: Any, table: str) -> int:
    if isinstance(value, bool):
        raise IntrospectionError(f"Invalid column type {value!r}", table=table)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        key = value.strip().upper()
        if key in SqlType.__members__:
            return int(SqlType[key])
        try:
            return int(key)
        except ValueError:
            pass
    raise IntrospectionError(f"Unknown column type {value!r}", table=table)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class SnapshotMetadataSource(MetadataSource):
    """
    Metadata boundary over an in-memory schema snapshot.

    Args:
        data: Parsed snapshot document
    """

    def __init__(self, data: Mapping[str, Any]):
        if not isinstance(data, Mapping):
            raise IntrospectionError("Snapshot document must be a mapping")
        tables = data.get("tables") or []
        if not isinstance(tables, list):
            raise IntrospectionError("Snapshot 'tables' must be a list")

        self._product = str(data.get("product") or "unknown")
        self._tables: List[Dict[str, Any]] = []
        for entry in tables:
            if not isinstance(entry, Mapping) or not entry.get("name"):
                raise IntrospectionError(f"Snapshot table entry without a name: {entry!r}")
            self._tables.append(dict(entry))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> SnapshotMetadataSource:
        """Load a snapshot from a YAML or JSON file."""
        path = Path(path)
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise IntrospectionError(f"Failed to read snapshot {path}: {e}") from e

        source = cls(data)
        logger.info(f"Loaded snapshot of {len(source._tables)} table(s) from {path}")
        return source

    @property
    def product_name(self) -> str:
        return self._product

    def list_catalogs(self) -> List[str]:
        return sorted({t["catalog"] for t in self._tables if t.get("catalog")})

    def list_schemas(self) -> List[str]:
        return sorted({t["schema"] for t in self._tables if t.get("schema")})

    def list_tables(self, catalog: Optional[str], schema: Optional[str]) -> List[str]:
        return [
            t["name"] for t in self._tables
            if self._matches(t, "catalog", catalog) and self._matches(t, "schema", schema)
        ]

    def get_columns(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[ColumnRow]:
        entry = self._table(catalog, schema, table)
        rows = []
        for col in _as_list(entry.get("columns")):
            if not isinstance(col, Mapping) or not col.get("name"):
                raise IntrospectionError(f"Invalid column entry {col!r}", table=table)
            default = col.get("default")
            rows.append(ColumnRow(
                name=str(col["name"]),
                type_code=_type_code(col.get("type", "OTHER"), table),
                type_name=col.get("type_name"),
                nullable=bool(col.get("nullable", True)),
                default=str(default) if default is not None else None,
                auto_increment=str(col.get("auto_increment") or ""),
            ))
        return rows

    def get_primary_keys(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[str]:
        entry = self._table(catalog, schema, table)
        return [str(c) for c in _as_list(entry.get("primary_key"))]

    def get_imported_keys(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[ImportedFkRow]:
        entry = self._table(catalog, schema, table)
        rows = []
        for fk in _as_list(entry.get("foreign_keys")):
            if not isinstance(fk, Mapping) or not fk.get("ref_table"):
                raise IntrospectionError(f"Invalid foreign key entry {fk!r}", table=table)
            local_cols = _as_list(fk.get("columns", fk.get("column")))
            ref_cols = _as_list(fk.get("ref_columns", fk.get("ref_column")))
            if not local_cols or len(local_cols) != len(ref_cols):
                raise IntrospectionError(
                    f"Foreign key {fk.get('name')!r} has mismatched column lists", table=table
                )
            fk_name = fk.get("name") or synthesize_fk_name(
                str(fk["ref_table"]), "_".join(str(c) for c in local_cols)
            )
            for seq, (local_col, ref_col) in enumerate(zip(local_cols, ref_cols), start=1):
                rows.append(ImportedFkRow(
                    fk_name=fk_name,
                    local_column=str(local_col),
                    target_table=str(fk["ref_table"]),
                    target_column=str(ref_col),
                    key_seq=seq,
                ))
        return rows

    def get_unique_index_columns(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[Tuple[str, ...]]:
        entry = self._table(catalog, schema, table)
        unique = []
        pk = _as_list(entry.get("primary_key"))
        if pk:
            unique.append(tuple(str(c) for c in pk))
        for index in _as_list(entry.get("unique_indexes")):
            unique.append(tuple(str(c) for c in _as_list(index)))
        return unique

    @staticmethod
    def _matches(entry: Mapping[str, Any], key: str, wanted: Optional[str]) -> bool:
        value = entry.get(key)
        return wanted is None or value is None or value == wanted

    def _table(self, catalog: Optional[str], schema: Optional[str], table: str) -> Dict[str, Any]:
        candidates = [
            t for t in self._tables
            if self._matches(t, "catalog", catalog) and self._matches(t, "schema", schema)
        ]
        for t in candidates:
            if t["name"] == table:
                return t
        for t in candidates:
            if str(t["name"]).lower() == table.lower():
                return t
        raise IntrospectionError("Table not found in snapshot", table=table)


def snapshot_from_source(
    source: MetadataSource,
    catalog: Optional[str] = None,
    schema: Optional[str] = None,
    tables: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Capture a snapshot document from a live metadata source.

    Args:
        source: Metadata boundary to read
        catalog: Catalog name (may be None)
        schema: Schema name (may be None)
        tables: Optional table list; all tables when omitted

    Returns:
        Snapshot document suitable for SnapshotMetadataSource

    Raises:
        IntrospectionError: If any metadata query fails
    """
    introspector = SchemaIntrospector(source)
    if tables is None:
        tables = introspector.list_tables(catalog, schema)

    entries = []
    for table in tables:
        rows = introspector.introspect(catalog, schema, table)

        fks: Dict[str, Dict[str, Any]] = {}
        for row in rows.fk_rows:
            fk = fks.setdefault(row.fk_name, {
                "name": row.fk_name,
                "columns": [],
                "ref_table": row.target_table,
                "ref_columns": [],
            })
            fk["columns"].append(row.local_column)
            fk["ref_columns"].append(row.target_column)

        entry: Dict[str, Any] = {"name": table}
        if catalog:
            entry["catalog"] = catalog
        if schema:
            entry["schema"] = schema
        entry["columns"] = [
            {
                "name": c.name,
                "type": SqlType(c.type_code).name if c.type_code in SqlType._value2member_map_ else c.type_code,
                "type_name": c.type_name,
                "nullable": c.nullable,
                "default": c.default,
                "auto_increment": c.auto_increment,
            }
            for c in rows.columns
        ]
        entry["primary_key"] = introspector.primary_key(catalog, schema, table)
        entry["foreign_keys"] = list(fks.values())
        entry["unique_indexes"] = [
            list(cols) for cols in introspector.unique_indexes(catalog, schema, table)
        ]
        entries.append(entry)

    logger.info(f"Captured snapshot of {len(entries)} table(s)")
    return {"product": introspector.product_name, "tables": entries}
