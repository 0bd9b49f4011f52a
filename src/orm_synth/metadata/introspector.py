"""
Schema introspector: reads the raw metadata of one table at a time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Optional, Tuple, TypeVar

from orm_synth.errors import IntrospectionError
from orm_synth.metadata.source import MetadataSource
from orm_synth.models import ColumnRow, ImportedFkRow, Vendor

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TableRows:
    """Raw metadata rows of one table, prior to folding into an EntityModel."""
    catalog: Optional[str]
    schema: Optional[str]
    table: str
    columns: List[ColumnRow] = field(default_factory=list)
    pk_columns: FrozenSet[str] = frozenset()
    fk_rows: List[ImportedFkRow] = field(default_factory=list)


def synthesize_fk_name(target_table: str, local_column: str) -> str:
    """Deterministic group name for a foreign key the driver left unnamed."""
    return f"{target_table}__{local_column}"


class SchemaIntrospector:
    """
    Queries a metadata boundary for the columns, keys and indexes of a table.

    Every failure of the boundary surfaces as IntrospectionError naming the
    table being read. Nothing is retried.
    """

    def __init__(self, source: MetadataSource):
        self.source = source
        self._vendor: Optional[Vendor] = None

    @property
    def product_name(self) -> str:
        """Database product name reported by the boundary."""
        return self._call(lambda: self.source.product_name, None, "read product name")

    @property
    def vendor(self) -> Vendor:
        """Vendor detected from the boundary's product name."""
        if self._vendor is None:
            product = self.product_name
            self._vendor = Vendor.from_product_name(product)
            logger.debug(f"Detected vendor {self._vendor.value} from product {product!r}")
        return self._vendor

    def list_catalogs(self) -> List[str]:
        return self._call(self.source.list_catalogs, None, "list catalogs")

    def list_schemas(self) -> List[str]:
        return self._call(self.source.list_schemas, None, "list schemas")

    def list_tables(self, catalog: Optional[str], schema: Optional[str]) -> List[str]:
        """List tables in discovery order."""
        tables = self._call(
            lambda: self.source.list_tables(catalog, schema), None, "list tables"
        )
        logger.info(f"Found {len(tables)} table(s) in catalog={catalog} schema={schema}")
        return list(tables)

    def introspect(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> TableRows:
        """
        Read the raw metadata of a table.

        Args:
            catalog: Catalog name (may be None)
            schema: Schema name (may be None)
            table: Physical table name

        Returns:
            TableRows with ordered columns, the PK column set and raw FK rows

        Raises:
            IntrospectionError: If any metadata query fails
        """
        columns = self._call(
            lambda: self.source.get_columns(catalog, schema, table), table, "read columns"
        )
        pk_columns = self.primary_key(catalog, schema, table)
        imported = self._call(
            lambda: self.source.get_imported_keys(catalog, schema, table), table, "read foreign keys"
        )

        fk_rows = []
        for row in imported:
            if not row.fk_name or not row.fk_name.strip():
                row = ImportedFkRow(
                    fk_name=synthesize_fk_name(row.target_table, row.local_column),
                    local_column=row.local_column,
                    target_table=row.target_table,
                    target_column=row.target_column,
                    key_seq=row.key_seq,
                )
            fk_rows.append(row)

        logger.debug(
            f"Introspected {table}: {len(columns)} columns, "
            f"{len(pk_columns)} PK columns, {len(fk_rows)} FK rows"
        )

        return TableRows(
            catalog=catalog,
            schema=schema,
            table=table,
            columns=list(columns),
            pk_columns=frozenset(pk_columns),
            fk_rows=fk_rows,
        )

    def primary_key(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[str]:
        """Primary key columns of a table, in key order."""
        return list(self._call(
            lambda: self.source.get_primary_keys(catalog, schema, table), table, "read primary key"
        ))

    def unique_indexes(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[Tuple[str, ...]]:
        """Column lists of every unique index of a table, the primary key included."""
        return list(self._call(
            lambda: self.source.get_unique_index_columns(catalog, schema, table),
            table,
            "read unique indexes",
        ))

    def is_column_unique(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
        column: str,
    ) -> bool:
        """Check whether a column participates in any unique index of the table."""
        column_lower = column.lower()
        return any(
            col is not None and col.lower() == column_lower
            for index_columns in self.unique_indexes(catalog, schema, table)
            for col in index_columns
        )

    def _call(self, fn: Callable[[], T], table: Optional[str], action: str) -> T:
        try:
            return fn()
        except IntrospectionError:
            raise
        except Exception as e:
            raise IntrospectionError(f"Failed to {action}: {e}", table=table) from e
