"""
Metadata boundary and per-table introspection.

Provides a common interface over live databases (SQLAlchemy inspector,
Oracle data dictionary) and offline schema snapshots.
"""

from orm_synth.metadata.source import MetadataSource
from orm_synth.metadata.introspector import SchemaIntrospector, TableRows
from orm_synth.metadata.snapshot import SnapshotMetadataSource, snapshot_from_source

__all__ = [
    "MetadataSource",
    "SchemaIntrospector",
    "TableRows",
    "SnapshotMetadataSource",
    "snapshot_from_source",
]
