"""
Relationship resolution over the full set of built entity models.

Cardinality of a single-column foreign key follows the uniqueness of its
local column: covered by a unique index -> one-to-one, otherwise
many-to-one. Parents get an inverse field per referencing child; inverse
field names are made unique per parent by numeric suffixes assigned in model
order, so identical inputs always resolve to identical names.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from orm_synth.errors import NameCollisionResolved
from orm_synth.models import (
    Cardinality,
    EntityModel,
    FkMode,
    ForwardRelation,
    InverseRelation,
    RelationFetch,
    SimpleFkModel,
)
from orm_synth.modeling.naming import NamingResolver, lower_first, pluralize

logger = logging.getLogger(__name__)

UniquenessLookup = Callable[[Optional[str], Optional[str], str, str], bool]


def uniquify(candidate: str, used: Set[str]) -> str:
    """Return candidate, or candidate2, candidate3, ... whichever is free first."""
    base = candidate
    idx = 2
    while candidate in used:
        candidate = f"{base}{idx}"
        idx += 1
    used.add(candidate)
    return candidate


class RelationshipResolver:
    """
    Infers FK cardinality and builds forward and inverse relation descriptors.

    Args:
        naming: Resolver used for entity names
        is_unique: Lookup (catalog, schema, table, column) -> bool, usually
            SchemaIntrospector.is_column_unique
        fk_mode: SCALAR disables relation descriptors entirely
        fetch: Fetch strategy for single-valued relations
    """

    def __init__(
        self,
        naming: NamingResolver,
        is_unique: UniquenessLookup,
        fk_mode: FkMode = FkMode.RELATION,
        fetch: RelationFetch = RelationFetch.LAZY,
    ):
        self.naming = naming
        self.is_unique = is_unique
        self.fk_mode = fk_mode
        self.fetch = fetch
        self.diagnostics: List[Warning] = []
        self._unique_cache: Dict[Tuple[Optional[str], Optional[str], str, str], bool] = {}

    def cardinality(self, model: EntityModel, fk: SimpleFkModel) -> Cardinality:
        """Classify a foreign key edge by uniqueness of its local column."""
        key = (model.catalog, model.schema, model.table.lower(), fk.local_column.lower())
        if key not in self._unique_cache:
            self._unique_cache[key] = bool(
                self.is_unique(model.catalog, model.schema, model.table, fk.local_column)
            )
        if self._unique_cache[key]:
            return Cardinality.ONE_TO_ONE
        return Cardinality.MANY_TO_ONE

    def forward_relations(self, model: EntityModel) -> List[ForwardRelation]:
        """
        Child-side relations of a model.

        Foreign keys whose local column belongs to the primary key stay
        scalar (they are part of the identifier).
        """
        if self.fk_mode == FkMode.SCALAR:
            return []

        relations = []
        for fk in model.simple_fks:
            if fk.local_column in model.pk_columns:
                continue

            target_entity = self.naming.resolve_entity_name(fk.target_table)
            relations.append(ForwardRelation(
                field_name=lower_first(target_entity),
                target_table=fk.target_table,
                target_entity=target_entity,
                cardinality=self.cardinality(model, fk),
                join_column=fk.local_column,
                target_column=fk.target_column,
                fetch=self.fetch,
            ))
        return relations

    def inverse_relations(
        self,
        parent: EntityModel,
        models: Sequence[EntityModel],
    ) -> List[InverseRelation]:
        """
        Parent-side back-references from every other model pointing at parent.

        Args:
            parent: The referenced model
            models: All models of the run, in build order

        Returns:
            Inverse relations in model order, with collision-free field names
        """
        if self.fk_mode == FkMode.SCALAR:
            return []

        relations = []
        used: Set[str] = set()
        mapped_by = lower_first(self.naming.resolve_entity_name(parent.table))
        parent_table = parent.table.lower()

        for child in models:
            if child is parent:
                continue

            for fk in child.simple_fks:
                if fk.target_table.lower() != parent_table:
                    continue

                child_entity = self.naming.resolve_entity_name(child.table)
                cardinality = self.cardinality(child, fk)

                if cardinality == Cardinality.ONE_TO_ONE:
                    base = lower_first(child_entity)
                    fetch = self.fetch
                else:
                    base = pluralize(lower_first(child_entity))
                    fetch = RelationFetch.LAZY

                field_name = uniquify(base, used)
                if field_name != base:
                    collision = NameCollisionResolved(parent.table, base, field_name)
                    logger.info(str(collision))
                    self.diagnostics.append(collision)

                relations.append(InverseRelation(
                    field_name=field_name,
                    child_table=child.table,
                    child_entity=child_entity,
                    cardinality=cardinality,
                    join_column=fk.local_column,
                    mapped_by=mapped_by,
                    fetch=fetch,
                ))

        return relations

    def resolve(
        self,
        models: Sequence[EntityModel],
    ) -> Dict[str, Tuple[List[ForwardRelation], List[InverseRelation]]]:
        """
        Resolve forward and inverse relations of every model.

        Returns:
            Mapping of physical table name -> (forward, inverse), in model order
        """
        resolved = {}
        for model in models:
            resolved[model.table] = (
                self.forward_relations(model),
                self.inverse_relations(model, models),
            )

        n_forward = sum(len(f) for f, _ in resolved.values())
        n_inverse = sum(len(i) for _, i in resolved.values())
        logger.info(f"Resolved {n_forward} relation(s) and {n_inverse} inverse relation(s)")
        return resolved
