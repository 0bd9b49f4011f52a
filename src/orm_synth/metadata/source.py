"""
Abstract metadata boundary.

A MetadataSource exposes, per (catalog, schema, table), the column listing,
primary key listing, imported foreign key listing and unique index listing
of a connected database. Implementations wrap an already-open connection;
they never open connections or handle credentials themselves.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from orm_synth.models import ColumnRow, ImportedFkRow


class MetadataSource(ABC):
    """Abstract base class for database metadata access."""

    @property
    @abstractmethod
    def product_name(self) -> str:
        """Database product name as reported by the driver."""

    def list_catalogs(self) -> List[str]:
        """List catalogs visible on the connection."""
        return []

    def list_schemas(self) -> List[str]:
        """List schemas visible on the connection."""
        return []

    @abstractmethod
    def list_tables(self, catalog: Optional[str], schema: Optional[str]) -> List[str]:
        """List base table names, in the order the database reports them."""

    @abstractmethod
    def get_columns(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[ColumnRow]:
        """Get column descriptors in ordinal order."""

    @abstractmethod
    def get_primary_keys(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[str]:
        """Get primary key column names."""

    @abstractmethod
    def get_imported_keys(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[ImportedFkRow]:
        """Get one row per (foreign key, column) pair imported by the table."""

    @abstractmethod
    def get_unique_index_columns(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
    ) -> List[Tuple[str, ...]]:
        """Get the column tuple of every unique index on the table."""
