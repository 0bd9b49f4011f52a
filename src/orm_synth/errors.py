"""
Exceptions and diagnostic warnings raised while building the model.

IntrospectionError is fatal for a run. OverrideLoadError is fatal only to the
strict loader; the lenient loader logs it and continues with derived names.
The warning classes are not raised: they are collected as typed diagnostics
on the resolved schema and logged.
"""

from __future__ import annotations

from typing import Optional, Sequence


class OrmSynthError(Exception):
    """Base class for orm_synth errors."""


class IntrospectionError(OrmSynthError):
    """The metadata boundary was unreachable or a metadata query failed."""

    def __init__(self, message: str, table: Optional[str] = None):
        self.table = table
        if table:
            message = f"{message} (table: {table})"
        super().__init__(message)


class OverrideLoadError(OrmSynthError):
    """The naming override document is missing or malformed."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"{message}: {path}"
        super().__init__(message)


class AmbiguousRelationshipWarning(UserWarning):
    """A multi-column foreign key was dropped from the model."""

    def __init__(self, table: str, fk_name: str, columns: Sequence[str]):
        self.table = table
        self.fk_name = fk_name
        self.columns = tuple(columns)
        super().__init__(
            f"Multi-column foreign key {fk_name} on {table} "
            f"({', '.join(self.columns)}) is not modeled as a relation"
        )


class NameCollisionResolved(UserWarning):
    """Two inverse fields on one parent shared a base name."""

    def __init__(self, parent_table: str, base_name: str, resolved_name: str):
        self.parent_table = parent_table
        self.base_name = base_name
        self.resolved_name = resolved_name
        super().__init__(
            f"Inverse field {base_name!r} on {parent_table} already taken, "
            f"renamed to {resolved_name!r}"
        )
