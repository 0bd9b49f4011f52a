"""
Naming resolution: entity and field identifiers from physical names.

Precedence:
1. Override document entry for the table (looked up case-insensitively).
2. Default derivation from the physical name.

Override document example (YAML):

    tables:
      problems:
        entityName: Problem
        columns:
          problem_id: id
          problem_type: type
      incidents:
        entityName: Incident
        columns:
          INCIDENT_SEVERITY: severityLevel

Tables and columns not listed keep their derived names.

The derivation heuristics are deliberately approximate and must stay stable:
previously generated artifacts depend on the exact identifiers they produce.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from orm_synth.errors import OverrideLoadError
from orm_synth.models import EntityModel, NamingOverrides

logger = logging.getLogger(__name__)

_SEPARATOR = re.compile(r"[^A-Za-z0-9]")
_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")

_ES_ENDINGS = ("ses", "xes", "zes", "ches", "shes")
_OVERRIDE_ENTRY_KEYS = ("entityName", "entity_name", "columns")


def capitalize(s: Optional[str]) -> Optional[str]:
    """Upper-case the first character, leave the rest untouched."""
    if s is None or not s.strip():
        return s
    return s[0].upper() + s[1:]


def lower_first(s: Optional[str]) -> Optional[str]:
    """Lower-case the first character, leave the rest untouched."""
    if s is None or not s.strip():
        return s
    return s[0].lower() + s[1:]


def pluralize(name: Optional[str]) -> Optional[str]:
    """Append "s" unless the name already ends in s/S."""
    if name is None or not name.strip():
        return name
    if name[-1] in ("s", "S"):
        return name
    return name + "s"


def singularize(token: Optional[str]) -> Optional[str]:
    """
    Naive plural -> singular heuristic for English-like plurals.

    companies -> company, batches -> batch, classes -> class,
    boxes -> box, incidents -> incident. Anything else is returned as is.
    """
    if token is None or not token.strip():
        return token

    lw = token.lower()
    if lw.endswith("ies") and len(token) > 3:
        return token[:-3] + "y"
    if lw.endswith(_ES_ENDINGS) and len(token) > 3:
        return token[:-2]
    if lw.endswith("s") and len(token) > 1:
        return token[:-1]
    return token


def split_camel_case(s: Optional[str]) -> List[str]:
    """
    Split on camelCase / PascalCase boundaries.

    Boundaries: lower -> upper ("tM"), digit -> letter ("2a"), and before the
    last capital of an upper run followed by a lower ("PBSCode" -> "PBS", "Code").
    """
    parts: List[str] = []
    if s is None or not s.strip():
        return parts

    current = ""
    for i, c in enumerate(s):
        if not current:
            current = c
            continue

        prev = s[i - 1]
        boundary = (
            (prev.islower() and c.isupper())
            or (prev.isdigit() and c.isalpha())
            or (
                i < len(s) - 1
                and prev.isupper()
                and c.isupper()
                and s[i + 1].islower()
            )
        )

        if boundary:
            parts.append(current)
            current = ""
        current += c

    if current:
        parts.append(current)
    return parts


def split_into_tokens(raw: Optional[str]) -> List[str]:
    """
    Split a table name into words.

    Non-alphanumeric separators win; otherwise camel-case boundaries;
    otherwise the whole name is a single token.
    """
    if raw is None or not raw.strip():
        return []

    if _SEPARATOR.search(raw):
        return [p for p in _SEPARATORS.split(raw) if p]

    camel_parts = split_camel_case(raw)
    if camel_parts:
        return camel_parts

    return [raw]


def derive_entity_name(table_name: Optional[str]) -> Optional[str]:
    """
    Derive an entity name from a physical table name.

    Examples:
        "users"                      -> "User"
        "intervention_subcategories" -> "InterventionSubcategory"
        "CUSTOMER_ORDERS"            -> "CustomerOrder"
        "IncidentsMaintenance"       -> "IncidentMaintenance"
        "PBSCode"                    -> "PbsCode"

    In a camel-case name (no separators) an all-uppercase token is an acronym
    and is not singularized. Separated names singularize every token:
    "ORDERS_archive" -> "OrderArchive". A run-on lowercase name cannot be split:
    "incidentsmaintenance" -> "Incidentsmaintenance".
    """
    if table_name is None or not table_name.strip():
        return table_name

    tokens = split_into_tokens(table_name)
    keep_acronyms = (
        not _SEPARATOR.search(table_name)
        and any(c.islower() for c in table_name)
    )

    words = []
    for token in tokens:
        if keep_acronyms and len(token) > 1 and token.isupper():
            singular = token
        else:
            singular = singularize(token)
        words.append(capitalize(singular.lower()))

    if not words:
        return capitalize(table_name.lower())
    return "".join(words)


def derive_field_name(column_name: Optional[str]) -> Optional[str]:
    """
    Derive a field name from a physical column name.

    With separators the name is camel-folded:
        "problem_id" -> "problemId", "ASSET_CODE" -> "assetCode"
    Without, internal casing is kept and only the first character lowered:
        "PBSCode" -> "pBSCode"
    """
    if column_name is None or not column_name.strip():
        return column_name

    if not _SEPARATOR.search(column_name):
        return lower_first(column_name)

    parts = _SEPARATORS.split(column_name)
    if not any(parts):
        return column_name

    first, rest = parts[0], parts[1:]
    return first.lower() + "".join(capitalize(p.lower()) or "" for p in rest)


class NamingResolver:
    """
    Resolves entity names for tables and field names for columns.

    Args:
        overrides: Naming overrides, built once and shared read-only
    """

    def __init__(self, overrides: Optional[NamingOverrides] = None):
        self.overrides = overrides if overrides is not None else NamingOverrides()

    def resolve_entity_name(self, table_name: Optional[str]) -> Optional[str]:
        """Entity name for a table: non-blank override, else derived."""
        override = self.overrides.get(table_name)
        if override is not None and override.entity_name and override.entity_name.strip():
            return override.entity_name
        return derive_entity_name(table_name)

    def resolve_column_name(
        self,
        table_name: Optional[str],
        column_name: Optional[str],
    ) -> Optional[str]:
        """Field name for a column: exact override entry, else derived."""
        override = self.overrides.get(table_name)
        if override is not None and column_name in override.columns:
            return override.columns[column_name]
        return derive_field_name(column_name)

    def resolve_field_names(self, model: EntityModel) -> Dict[str, str]:
        """Map every physical column of a model to its field name."""
        return {
            name: self.resolve_column_name(model.table, name)
            for name in model.columns
        }


def _unwrap_tables(data: Mapping[str, Any]) -> Mapping[str, Any]:
    tables = data.get("tables")
    if isinstance(tables, dict) and not any(k in tables for k in _OVERRIDE_ENTRY_KEYS):
        return tables
    return data


def load_naming_overrides(path: Union[str, Path]) -> NamingOverrides:
    """
    Load table/column naming overrides from a YAML (or JSON) file.

    Args:
        path: Path to the override document

    Returns:
        NamingOverrides keyed by lowercased table name

    Raises:
        OverrideLoadError: If the file is missing, unreadable or malformed
    """
    path = Path(path)
    if not path.exists():
        raise OverrideLoadError("Naming override file not found", str(path))

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise OverrideLoadError(f"Failed to read naming override file ({e})", str(path)) from e

    if data is None:
        logger.warning(f"Naming override file is empty: {path}")
        return NamingOverrides()

    if not isinstance(data, dict):
        raise OverrideLoadError("Naming override document must be a mapping", str(path))

    tables = _unwrap_tables(data)
    for table_name, entry in tables.items():
        if entry is None:
            continue
        if not isinstance(entry, dict):
            raise OverrideLoadError(
                f"Override for table {table_name!r} must be a mapping", str(path)
            )
        entity_name = entry.get("entityName", entry.get("entity_name"))
        if entity_name is not None and not isinstance(entity_name, str):
            raise OverrideLoadError(
                f"Entity name for table {table_name!r} must be a string", str(path)
            )
        columns = entry.get("columns")
        if columns is not None and not isinstance(columns, dict):
            raise OverrideLoadError(
                f"Column overrides for table {table_name!r} must be a mapping", str(path)
            )
        for column_name, field_name in (columns or {}).items():
            if not isinstance(field_name, str):
                raise OverrideLoadError(
                    f"Field name for column {table_name}.{column_name} must be a string, "
                    f"got {field_name!r}",
                    str(path),
                )

    overrides = NamingOverrides.from_dict(tables)
    logger.info(f"Loaded naming overrides from {path} ({len(overrides)} table(s) configured)")
    return overrides


def load_naming_overrides_or_default(path: Optional[Union[str, Path]]) -> NamingOverrides:
    """
    Load naming overrides, falling back to none on any load failure.

    A missing or malformed document is logged and the run proceeds with
    derived names only.
    """
    if path is None:
        logger.info("No naming override file provided")
        return NamingOverrides()

    try:
        return load_naming_overrides(path)
    except OverrideLoadError as e:
        logger.warning(f"{e}; using derived names only")
        return NamingOverrides()
