"""
Model pipeline - schema metadata to resolved object-relational model.

Runs the stages in order:
1. Discover tables (unless a table list is given)
2. Introspect and build one EntityModel per table, sequentially
3. Resolve entity and field names
4. Resolve forward and inverse relations over the full model set

A run either returns a ResolvedSchema covering every table or raises
IntrospectionError naming the failing table; partial results are never
returned.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from orm_synth.metadata.introspector import SchemaIntrospector
from orm_synth.metadata.source import MetadataSource
from orm_synth.models import (
    EntityModel,
    FkMode,
    ForwardRelation,
    GenerationStrategy,
    Identifier,
    IdentifierKind,
    InverseRelation,
    NamingOverrides,
    RelationFetch,
    ResolvedEntity,
    ResolvedField,
    ResolvedSchema,
    Vendor,
)
from orm_synth.modeling.builder import ModelBuilder, extract_sequence_name
from orm_synth.modeling.naming import NamingResolver, pluralize
from orm_synth.modeling.relationships import RelationshipResolver
from orm_synth.modeling.type_mapper import is_json_column, map_sql_type

logger = logging.getLogger(__name__)

_GENERATOR_NAME_UNSAFE = re.compile(r"[^A-Za-z0-9_]")


class ModelPipeline:
    """
    Builds the resolved model of a schema from a metadata boundary.

    Usage:
        pipeline = ModelPipeline(
            SqlAlchemyMetadataSource(engine),
            overrides=load_naming_overrides_or_default("naming.yaml"),
        )
        resolved = pipeline.run(schema="public")
    """

    def __init__(
        self,
        source: MetadataSource,
        overrides: Optional[NamingOverrides] = None,
        fk_mode: FkMode = FkMode.RELATION,
        fetch: RelationFetch = RelationFetch.LAZY,
    ):
        """
        Initialize the pipeline.

        Args:
            source: Metadata boundary over an already-open connection
            overrides: Naming overrides (none by default)
            fk_mode: Whether FKs become relations or stay scalar fields
            fetch: Fetch strategy for single-valued relations
        """
        self.introspector = SchemaIntrospector(source)
        self.naming = NamingResolver(overrides)
        self.fk_mode = fk_mode
        self.fetch = fetch

    def run(
        self,
        catalog: Optional[str] = None,
        schema: Optional[str] = None,
        tables: Optional[Sequence[str]] = None,
    ) -> ResolvedSchema:
        """
        Build and resolve every table of a catalog/schema.

        Args:
            catalog: Catalog name (None if the vendor has none)
            schema: Schema name (None if the vendor has none)
            tables: Optional explicit table list; discovered when omitted

        Returns:
            ResolvedSchema with entities in table-discovery order

        Raises:
            IntrospectionError: If any metadata read fails
        """
        logger.info(f"Scanning catalog={catalog} schema={schema}")

        vendor = self.introspector.vendor
        if tables is None:
            tables = self.introspector.list_tables(catalog, schema)

        builder = ModelBuilder(vendor)
        built = builder.build_all(self.introspector, catalog, schema, list(tables))

        relations = RelationshipResolver(
            self.naming,
            self.introspector.is_column_unique,
            fk_mode=self.fk_mode,
            fetch=self.fetch,
        )
        resolved_relations = relations.resolve(built.models)

        entities = []
        for model in built.models:
            forward, inverse = resolved_relations[model.table]
            entities.append(self._resolve_entity(model, builder, vendor, forward, inverse))

        result = ResolvedSchema(
            vendor=vendor,
            catalog=catalog,
            schema=schema,
            entities=entities,
            diagnostics=built.diagnostics + relations.diagnostics,
        )
        logger.info(
            f"Resolved {len(result.entities)} entit{'y' if len(result.entities) == 1 else 'ies'} "
            f"with {len(result.diagnostics)} diagnostic(s)"
        )
        return result

    def _resolve_entity(
        self,
        model: EntityModel,
        builder: ModelBuilder,
        vendor: Vendor,
        forward: List[ForwardRelation],
        inverse: List[InverseRelation],
    ) -> ResolvedEntity:
        entity_name = self.naming.resolve_entity_name(model.table)
        composite = model.has_composite_pk
        relation_columns = {r.join_column for r in forward}

        fields = []
        id_fields = []
        for col in model.columns.values():
            in_pk = col.name in model.pk_columns
            if composite and in_pk:
                id_fields.append(self._resolve_field(model, col.name, vendor, is_id=True))
                continue
            # simple PK columns stay scalar even when they are also FKs
            if col.name in relation_columns and not in_pk:
                continue
            fields.append(self._resolve_field(model, col.name, vendor, is_id=in_pk))

        if composite:
            identifier = Identifier(
                kind=IdentifierKind.COMPOSITE,
                id_class_name=f"{entity_name}Id",
                id_fields=tuple(id_fields),
            )
        elif model.has_simple_pk:
            identifier = Identifier(
                kind=IdentifierKind.SIMPLE,
                abstract_type=builder.identifier_type(model),
                field_name=self.naming.resolve_column_name(model.table, model.pk_columns[0]),
            )
        else:
            identifier = Identifier(kind=IdentifierKind.NONE)

        return ResolvedEntity(
            model=model,
            entity_name=entity_name,
            plural_name=pluralize(entity_name),
            fields=tuple(fields),
            identifier=identifier,
            relations=tuple(forward),
            inverse_relations=tuple(inverse),
        )

    def _resolve_field(
        self,
        model: EntityModel,
        column_name: str,
        vendor: Vendor,
        is_id: bool,
    ) -> ResolvedField:
        col = model.columns[column_name]

        generation = None
        sequence_name = None
        generator_name = None
        # generated values apply to simple identifiers only
        if is_id and not model.has_composite_pk and col.auto_increment:
            if vendor == Vendor.POSTGRES:
                sequence_name = extract_sequence_name(col.default)
            if sequence_name:
                generation = GenerationStrategy.SEQUENCE
                generator_name = _GENERATOR_NAME_UNSAFE.sub(
                    "_", f"{model.table}_{col.name}_seq_gen"
                )
            else:
                generation = GenerationStrategy.IDENTITY

        return ResolvedField(
            column=col,
            field_name=self.naming.resolve_column_name(model.table, col.name),
            abstract_type=map_sql_type(col.type_code, col.type_name, col.nullable, vendor),
            is_id=is_id,
            generation=generation,
            sequence_name=sequence_name,
            generator_name=generator_name,
            column_definition=col.type_name.strip().lower() if is_json_column(col.type_name, vendor) else None,
        )
