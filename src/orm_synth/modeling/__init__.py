"""
Model building, naming and relationship resolution.
"""

from orm_synth.modeling.type_mapper import map_sql_type
from orm_synth.modeling.builder import ModelBuilder, detect_auto_increment
from orm_synth.modeling.naming import (
    NamingResolver,
    load_naming_overrides,
    load_naming_overrides_or_default,
)
from orm_synth.modeling.relationships import RelationshipResolver
from orm_synth.modeling.pipeline import ModelPipeline

__all__ = [
    "map_sql_type",
    "ModelBuilder",
    "detect_auto_increment",
    "NamingResolver",
    "load_naming_overrides",
    "load_naming_overrides_or_default",
    "RelationshipResolver",
    "ModelPipeline",
]
