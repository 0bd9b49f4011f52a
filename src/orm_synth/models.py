"""
Core data models for the orm_synth package.

Defines the structural records built from database metadata (columns, keys,
per-table entity models), the naming override configuration, and the resolved
object-relational model handed to downstream emitters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


class SqlType(IntEnum):
    """Vendor-neutral SQL type codes as reported by metadata drivers."""
    BIT = -7
    TINYINT = -6
    SMALLINT = 5
    INTEGER = 4
    BIGINT = -5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    NUMERIC = 2
    DECIMAL = 3
    CHAR = 1
    VARCHAR = 12
    LONGVARCHAR = -1
    NCHAR = -15
    NVARCHAR = -9
    LONGNVARCHAR = -16
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    TIME_WITH_TIMEZONE = 2013
    TIMESTAMP_WITH_TIMEZONE = 2014
    BINARY = -2
    VARBINARY = -3
    LONGVARBINARY = -4
    NULL = 0
    OTHER = 1111
    JAVA_OBJECT = 2000
    DISTINCT = 2001
    STRUCT = 2002
    ARRAY = 2003
    BLOB = 2004
    CLOB = 2005
    REF = 2006
    SQLXML = 2009
    NCLOB = 2011
    BOOLEAN = 16


class Vendor(str, Enum):
    """Database products with vendor-specific metadata behavior."""
    POSTGRES = "postgres"
    MYSQL = "mysql"
    MARIADB = "mariadb"
    MSSQL = "mssql"
    H2 = "h2"
    DB2 = "db2"
    ORACLE = "oracle"
    SQLITE = "sqlite"
    UNKNOWN = "unknown"

    @classmethod
    def from_product_name(cls, product_name: Optional[str]) -> Vendor:
        """Detect the vendor from a driver-reported product name."""
        name = (product_name or "").lower()
        # mariadb before mysql: MariaDB drivers may mention both
        for marker, vendor in (
            ("postgres", cls.POSTGRES),
            ("mariadb", cls.MARIADB),
            ("mysql", cls.MYSQL),
            ("sql server", cls.MSSQL),
            ("microsoft", cls.MSSQL),
            ("mssql", cls.MSSQL),
            ("h2", cls.H2),
            ("db2", cls.DB2),
            ("oracle", cls.ORACLE),
            ("sqlite", cls.SQLITE),
        ):
            if marker in name:
                return vendor
        return cls.UNKNOWN


class AbstractType(str, Enum):
    """Abstract scalar types columns are mapped to."""
    STRING = "string"
    INT32 = "int32"
    INT64 = "int64"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    TIMESTAMP_TZ = "timestamp_tz"
    DATE = "date"
    TIME = "time"
    BINARY = "binary"
    JSON_MAP = "json_map"    # string-keyed map of opaque values
    OBJECT = "object"        # opaque fallback


class Cardinality(str, Enum):
    """Classification of a foreign-key edge."""
    ONE_TO_ONE = "one_to_one"
    MANY_TO_ONE = "many_to_one"


class FkMode(str, Enum):
    """How foreign keys are exposed on resolved entities."""
    SCALAR = "scalar"       # FK columns stay plain scalar fields
    RELATION = "relation"   # single-column FKs become relation descriptors


class RelationFetch(str, Enum):
    """Fetch strategy for single-valued relations."""
    LAZY = "lazy"
    EAGER = "eager"


class GenerationStrategy(str, Enum):
    """How an auto-generated identifier obtains its values."""
    IDENTITY = "identity"
    SEQUENCE = "sequence"


class IdentifierKind(str, Enum):
    """Primary key classification of an entity."""
    NONE = "none"
    SIMPLE = "simple"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class ColumnRow:
    """Raw column descriptor as reported by the metadata boundary."""
    name: str
    type_code: int
    type_name: Optional[str] = None
    nullable: bool = True
    default: Optional[str] = None
    auto_increment: str = ""  # raw driver flag, e.g. "YES" / "NO" / ""


@dataclass(frozen=True)
class ImportedFkRow:
    """One row of imported foreign-key metadata, prior to grouping."""
    fk_name: Optional[str]
    local_column: str
    target_table: str
    target_column: str
    key_seq: int = 1


@dataclass(frozen=True)
class ColumnModel:
    """Column of a built entity model."""
    name: str
    type_code: int
    type_name: Optional[str]
    nullable: bool
    default: Optional[str]
    auto_increment: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "type_code": self.type_code,
            "type_name": self.type_name,
            "nullable": self.nullable,
            "default": self.default,
            "auto_increment": self.auto_increment,
        }


@dataclass(frozen=True)
class SimpleFkModel:
    """Single-column foreign key retained for relationship inference."""
    local_column: str
    target_table: str
    target_column: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "local_column": self.local_column,
            "target_table": self.target_table,
            "target_column": self.target_column,
        }


@dataclass(frozen=True, eq=False)
class EntityModel:
    """
    Structural model of one table.

    Immutable once built: ``columns`` is a read-only ordered mapping of
    physical column name to ColumnModel, ``pk_columns`` keeps the order the
    boundary reported primary key columns in.
    """
    catalog: Optional[str]
    schema: Optional[str]
    table: str
    columns: Mapping[str, ColumnModel]
    pk_columns: Tuple[str, ...] = ()
    simple_fks: Tuple[SimpleFkModel, ...] = ()

    def __post_init__(self):
        if not isinstance(self.columns, MappingProxyType):
            object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))
        object.__setattr__(self, "pk_columns", tuple(dict.fromkeys(self.pk_columns)))
        object.__setattr__(self, "simple_fks", tuple(self.simple_fks))

    @property
    def full_name(self) -> str:
        """Return schema-qualified table name."""
        return f"{self.schema}.{self.table}" if self.schema else self.table

    @property
    def has_composite_pk(self) -> bool:
        return len(self.pk_columns) > 1

    @property
    def has_simple_pk(self) -> bool:
        return len(self.pk_columns) == 1

    @property
    def pk_column(self) -> Optional[ColumnModel]:
        """The primary key column of a simple-PK table."""
        if not self.has_simple_pk:
            return None
        return self.columns.get(self.pk_columns[0])

    def get_column(self, name: str) -> Optional[ColumnModel]:
        """Get column by name (case-insensitive)."""
        name_lower = name.lower()
        for col in self.columns.values():
            if col.name.lower() == name_lower:
                return col
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "catalog": self.catalog,
            "schema": self.schema,
            "table": self.table,
            "columns": [c.to_dict() for c in self.columns.values()],
            "pk_columns": list(self.pk_columns),
            "simple_fks": [fk.to_dict() for fk in self.simple_fks],
        }


@dataclass(frozen=True)
class TableOverride:
    """Naming overrides for one physical table."""
    entity_name: Optional[str] = None
    columns: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))


@dataclass(frozen=True)
class NamingOverrides:
    """
    Table and column naming overrides, keyed case-insensitively by table.

    Built once at startup and passed to NamingResolver; read-only for the run.
    """
    tables: Mapping[str, TableOverride] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(
            self,
            "tables",
            MappingProxyType({k.lower(): v for k, v in self.tables.items()}),
        )

    def get(self, table_name: Optional[str]) -> Optional[TableOverride]:
        """Look up the override for a table (case-insensitive)."""
        if not table_name:
            return None
        return self.tables.get(table_name.lower())

    def __len__(self) -> int:
        return len(self.tables)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NamingOverrides:
        """
        Create from a two-level mapping.

        Outer key is the physical table name; each value may hold
        ``entityName`` (or ``entity_name``) and a ``columns`` mapping.
        """
        tables = {}
        for table_name, entry in data.items():
            entry = entry or {}
            entity_name = entry.get("entityName", entry.get("entity_name"))
            columns = entry.get("columns") or {}
            tables[str(table_name)] = TableOverride(
                entity_name=str(entity_name) if entity_name is not None else None,
                columns={str(k): str(v) for k, v in columns.items()},
            )
        return cls(tables=tables)


@dataclass(frozen=True)
class ResolvedField:
    """A scalar field of a resolved entity."""
    column: ColumnModel
    field_name: str
    abstract_type: AbstractType
    is_id: bool = False
    generation: Optional[GenerationStrategy] = None
    sequence_name: Optional[str] = None
    generator_name: Optional[str] = None
    column_definition: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "column": self.column.name,
            "field_name": self.field_name,
            "type": self.abstract_type.value,
            "nullable": self.column.nullable,
            "is_id": self.is_id,
            "generation": self.generation.value if self.generation else None,
            "sequence_name": self.sequence_name,
            "generator_name": self.generator_name,
            "column_definition": self.column_definition,
        }


@dataclass(frozen=True)
class Identifier:
    """Identifier classification of a resolved entity."""
    kind: IdentifierKind
    abstract_type: Optional[AbstractType] = None
    field_name: Optional[str] = None
    id_class_name: Optional[str] = None
    id_fields: Tuple[ResolvedField, ...] = ()

    @property
    def is_composite(self) -> bool:
        return self.kind == IdentifierKind.COMPOSITE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "type": self.abstract_type.value if self.abstract_type else None,
            "field_name": self.field_name,
            "id_class_name": self.id_class_name,
            "id_fields": [f.to_dict() for f in self.id_fields],
        }


@dataclass(frozen=True)
class ForwardRelation:
    """Child-side relation to the entity a foreign key points at."""
    field_name: str
    target_table: str
    target_entity: str
    cardinality: Cardinality
    join_column: str
    target_column: str
    fetch: RelationFetch = RelationFetch.LAZY

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "field_name": self.field_name,
            "target_table": self.target_table,
            "target_entity": self.target_entity,
            "cardinality": self.cardinality.value,
            "join_column": self.join_column,
            "target_column": self.target_column,
            "fetch": self.fetch.value,
        }


@dataclass(frozen=True)
class InverseRelation:
    """Parent-side back-reference to the entities referencing it."""
    field_name: str
    child_table: str
    child_entity: str
    cardinality: Cardinality
    join_column: str
    mapped_by: str
    fetch: RelationFetch = RelationFetch.LAZY

    @property
    def is_collection(self) -> bool:
        return self.cardinality == Cardinality.MANY_TO_ONE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "field_name": self.field_name,
            "child_table": self.child_table,
            "child_entity": self.child_entity,
            "cardinality": self.cardinality.value,
            "join_column": self.join_column,
            "is_collection": self.is_collection,
            "mapped_by": self.mapped_by,
            "fetch": self.fetch.value,
        }


@dataclass(frozen=True)
class ResolvedEntity:
    """An entity model together with everything resolved about it."""
    model: EntityModel
    entity_name: str
    plural_name: str
    fields: Tuple[ResolvedField, ...]
    identifier: Identifier
    relations: Tuple[ForwardRelation, ...] = ()
    inverse_relations: Tuple[InverseRelation, ...] = ()

    @property
    def table(self) -> str:
        return self.model.table

    def get_field(self, column_name: str) -> Optional[ResolvedField]:
        """Get the scalar field mapped to a physical column (case-insensitive)."""
        name_lower = column_name.lower()
        for f in self.fields:
            if f.column.name.lower() == name_lower:
                return f
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "table": self.model.table,
            "catalog": self.model.catalog,
            "schema": self.model.schema,
            "entity_name": self.entity_name,
            "plural_name": self.plural_name,
            "identifier": self.identifier.to_dict(),
            "fields": [f.to_dict() for f in self.fields],
            "relations": [r.to_dict() for r in self.relations],
            "inverse_relations": [r.to_dict() for r in self.inverse_relations],
        }


@dataclass
class ResolvedSchema:
    """Ordered resolved entities of one run plus the diagnostics it raised."""
    vendor: Vendor
    catalog: Optional[str] = None
    schema: Optional[str] = None
    entities: List[ResolvedEntity] = field(default_factory=list)
    diagnostics: List[Warning] = field(default_factory=list)

    def get_entity(self, table_name: str) -> Optional[ResolvedEntity]:
        """Get entity by physical table name (case-insensitive)."""
        name_lower = table_name.lower()
        for entity in self.entities:
            if entity.table.lower() == name_lower:
                return entity
        return None

    @property
    def entity_names(self) -> List[str]:
        return [e.entity_name for e in self.entities]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "vendor": self.vendor.value,
            "catalog": self.catalog,
            "schema": self.schema,
            "entities": [e.to_dict() for e in self.entities],
            "diagnostics": [
                {"type": type(d).__name__, "message": str(d)} for d in self.diagnostics
            ],
        }
