"""
ORM Synth - Relational Schema to Object-Relational Model

Reverse-engineers a database schema into an in-memory object-relational model
that source emitters consume.

Features:
- Table metadata introspection through SQLAlchemy, the Oracle data dictionary
  or an offline schema snapshot
- Vendor-aware auto-increment and sequence detection
- Deterministic entity and field naming with YAML overrides
- One-to-one / many-to-one inference with collision-free inverse fields
"""

__version__ = "0.1.0"

from orm_synth.errors import (
    AmbiguousRelationshipWarning,
    IntrospectionError,
    NameCollisionResolved,
    OrmSynthError,
    OverrideLoadError,
)
from orm_synth.models import (
    AbstractType,
    Cardinality,
    ColumnModel,
    EntityModel,
    FkMode,
    NamingOverrides,
    RelationFetch,
    ResolvedEntity,
    ResolvedSchema,
    SimpleFkModel,
    SqlType,
    TableOverride,
    Vendor,
)
from orm_synth.metadata import (
    MetadataSource,
    SchemaIntrospector,
    SnapshotMetadataSource,
)
from orm_synth.modeling import (
    ModelBuilder,
    ModelPipeline,
    NamingResolver,
    RelationshipResolver,
    load_naming_overrides,
    load_naming_overrides_or_default,
    map_sql_type,
)

__all__ = [
    # Models
    "AbstractType",
    "Cardinality",
    "ColumnModel",
    "EntityModel",
    "FkMode",
    "NamingOverrides",
    "RelationFetch",
    "ResolvedEntity",
    "ResolvedSchema",
    "SimpleFkModel",
    "SqlType",
    "TableOverride",
    "Vendor",
    # Errors and diagnostics
    "AmbiguousRelationshipWarning",
    "IntrospectionError",
    "NameCollisionResolved",
    "OrmSynthError",
    "OverrideLoadError",
    # Metadata
    "MetadataSource",
    "SchemaIntrospector",
    "SnapshotMetadataSource",
    # Modeling
    "ModelBuilder",
    "ModelPipeline",
    "NamingResolver",
    "RelationshipResolver",
    "load_naming_overrides",
    "load_naming_overrides_or_default",
    "map_sql_type",
]
