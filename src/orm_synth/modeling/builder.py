"""
Model builder: folds raw introspection rows into immutable EntityModels.

Auto-increment detection is driven by AUTO_INCREMENT_RULES, a table of
vendor -> predicate pairs. Each predicate receives the lowercased type name
and default text of a column; the driver's own auto-increment flag is
checked first for every vendor.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from orm_synth.errors import AmbiguousRelationshipWarning, IntrospectionError
from orm_synth.metadata.introspector import SchemaIntrospector, TableRows
from orm_synth.models import (
    AbstractType,
    ColumnModel,
    ColumnRow,
    EntityModel,
    ImportedFkRow,
    SimpleFkModel,
    Vendor,
)
from orm_synth.modeling.type_mapper import map_sql_type

logger = logging.getLogger(__name__)

AutoIncrementRule = Callable[[str, str], bool]


def _postgres_rule(type_name: str, default: str) -> bool:
    return "nextval(" in default


def _mssql_rule(type_name: str, default: str) -> bool:
    return "identity" in type_name or "identity" in default


def _h2_rule(type_name: str, default: str) -> bool:
    return "identity" in type_name or "auto_increment" in default or "identity" in default


def _db2_rule(type_name: str, default: str) -> bool:
    return "generated" in default and "identity" in default


def _mysql_rule(type_name: str, default: str) -> bool:
    return "auto_increment" in default


def _oracle_rule(type_name: str, default: str) -> bool:
    # identity columns default to "<owner>"."ISEQ$$_<n>".nextval
    return "iseq$$_" in default and ".nextval" in default


AUTO_INCREMENT_RULES: Dict[Vendor, AutoIncrementRule] = {
    Vendor.POSTGRES: _postgres_rule,
    Vendor.MSSQL: _mssql_rule,
    Vendor.H2: _h2_rule,
    Vendor.DB2: _db2_rule,
    Vendor.MYSQL: _mysql_rule,
    Vendor.MARIADB: _mysql_rule,
    Vendor.ORACLE: _oracle_rule,
}

_NEXTVAL_PATTERN = re.compile(r"nextval\('([^']+)'", re.IGNORECASE)


def detect_auto_increment(
    vendor: Vendor,
    raw_flag: Optional[str],
    type_name: Optional[str],
    default: Optional[str],
) -> bool:
    """
    Decide whether a column is auto-generated.

    Args:
        vendor: Database vendor
        raw_flag: Driver-reported auto-increment flag ("YES"/"NO"/"")
        type_name: Vendor type name
        default: Raw column default definition

    Returns:
        True if the driver flag says yes or the vendor rule matches
    """
    if (raw_flag or "").strip().lower() == "yes":
        return True
    rule = AUTO_INCREMENT_RULES.get(vendor)
    if rule is None:
        return False
    return rule((type_name or "").lower(), (default or "").lower())


def extract_sequence_name(default: Optional[str]) -> Optional[str]:
    """Extract the sequence name from a ``nextval('...')`` default."""
    if not default:
        return None
    match = _NEXTVAL_PATTERN.search(default)
    return match.group(1) if match else None


@dataclass
class BuildResult:
    """Entity models of one pass, in build order, plus their diagnostics."""
    models: List[EntityModel] = field(default_factory=list)
    diagnostics: List[Warning] = field(default_factory=list)


class ModelBuilder:
    """Builds one EntityModel per table from introspected rows."""

    def __init__(self, vendor: Vendor):
        self.vendor = vendor
        self.diagnostics: List[Warning] = []

    def build(self, rows: TableRows) -> EntityModel:
        """
        Fold the raw rows of one table into an EntityModel.

        Multi-column foreign keys are dropped; each drop is logged and
        recorded in ``self.diagnostics`` as AmbiguousRelationshipWarning.
        """
        columns: Dict[str, ColumnModel] = {}
        for row in rows.columns:
            columns[row.name] = self._build_column(row)

        pk_columns = self._resolve_pk_columns(rows.table, columns, rows.pk_columns)

        simple_fks = self._group_foreign_keys(rows.table, rows.fk_rows)

        model = EntityModel(
            catalog=rows.catalog,
            schema=rows.schema,
            table=rows.table,
            columns=columns,
            pk_columns=tuple(pk_columns),
            simple_fks=tuple(simple_fks),
        )
        logger.debug(
            f"Built model {model.full_name}: {len(columns)} columns, "
            f"pk={list(model.pk_columns)}, {len(simple_fks)} simple FK(s)"
        )
        return model

    def build_all(
        self,
        introspector: SchemaIntrospector,
        catalog: Optional[str],
        schema: Optional[str],
        tables: List[str],
    ) -> BuildResult:
        """
        Introspect and build every table, sequentially, in the given order.

        All-or-nothing: an IntrospectionError on any table propagates and no
        partially built list is returned.
        """
        start = len(self.diagnostics)
        models = []
        for table in tables:
            rows = introspector.introspect(catalog, schema, table)
            models.append(self.build(rows))

        logger.info(f"Built {len(models)} entity model(s)")
        return BuildResult(models=models, diagnostics=self.diagnostics[start:])

    def identifier_type(self, model: EntityModel) -> Optional[AbstractType]:
        """Scalar identifier type of a simple-PK model, None otherwise."""
        col = model.pk_column
        if col is None:
            return None
        return map_sql_type(col.type_code, col.type_name, col.nullable, self.vendor)

    def _build_column(self, row: ColumnRow) -> ColumnModel:
        return ColumnModel(
            name=row.name,
            type_code=row.type_code,
            type_name=row.type_name,
            nullable=row.nullable,
            default=row.default,
            auto_increment=detect_auto_increment(
                self.vendor, row.auto_increment, row.type_name, row.default
            ),
        )

    @staticmethod
    def _resolve_pk_columns(
        table: str,
        columns: Dict[str, ColumnModel],
        pk_names: Iterable[str],
    ) -> List[str]:
        """PK column names spelled as the columns are, in ordinal order."""
        by_lower = {name.lower(): name for name in columns}
        resolved = set()
        for pk in pk_names:
            name = pk if pk in columns else by_lower.get(pk.lower())
            if name is None:
                raise IntrospectionError(
                    f"Primary key column {pk!r} is not a column of the table", table=table
                )
            resolved.add(name)
        return [name for name in columns if name in resolved]

    def _group_foreign_keys(
        self,
        table: str,
        fk_rows: List[ImportedFkRow],
    ) -> List[SimpleFkModel]:
        groups: Dict[str, List[ImportedFkRow]] = {}
        for row in fk_rows:
            groups.setdefault(row.fk_name, []).append(row)

        simple_fks = []
        for fk_name, group in groups.items():
            if len(group) == 1:
                row = group[0]
                simple_fks.append(SimpleFkModel(
                    local_column=row.local_column,
                    target_table=row.target_table,
                    target_column=row.target_column,
                ))
                continue

            group = sorted(group, key=lambda r: r.key_seq)
            warning = AmbiguousRelationshipWarning(
                table=table,
                fk_name=fk_name,
                columns=[r.local_column for r in group],
            )
            logger.warning(str(warning))
            self.diagnostics.append(warning)

        return simple_fks
