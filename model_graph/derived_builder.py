"""
Derived Graph Builder - Phase 2 of the Model-to-Graph Insertion

Creates the relationships whose targets may belong to any class of the
application: EXTENDS and IMPLEMENTS between classes, CALLS between methods.
Runs only on a ContainmentResult, i.e. once every entity has a node.

A target that was never given a node lies outside the application. The
UnresolvedReferencePolicy decides whether that drops the edge or fails the
phase.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from graph_store.database_manager import GraphTransaction
from graph_store.schemas import GraphRelationship, RelationType
from model_graph.containment_builder import ContainmentResult
from model_graph.exceptions import UnresolvedReferenceError

logger = logging.getLogger(__name__)


class UnresolvedReferencePolicy(str, Enum):
    """What to do with a hierarchy or call target outside the application."""
    DROP = "drop"
    STRICT = "strict"


@dataclass
class DerivationResult:
    """Counts produced by the derivation phase."""
    relationships_by_type: Dict[str, int] = field(default_factory=dict)
    dropped_references: int = 0


class DerivedGraphBuilder:
    """Phase 2: class hierarchy and call graph."""

    def __init__(self, transaction: GraphTransaction,
                 policy: UnresolvedReferencePolicy = UnresolvedReferencePolicy.DROP):
        self.transaction = transaction
        self.policy = UnresolvedReferencePolicy(policy)
        self.result = DerivationResult()

    def build(self, containment: ContainmentResult) -> DerivationResult:
        """
        Create the derived relationships of a fully inserted application.

        Args:
            containment: Result of the containment phase for the application

        Returns:
            DerivationResult with relationship counts
        """
        if not isinstance(containment, ContainmentResult):
            raise TypeError("Derived relationships require a completed containment phase")

        logger.info(f"Derivation phase started for '{containment.app.name}'")

        self._create_hierarchy(containment)
        self._create_call_graph(containment)

        if self.result.dropped_references:
            logger.info(f"Dropped {self.result.dropped_references} references outside the application")

        logger.info(
            f"Derivation phase completed: "
            f"{sum(self.result.relationships_by_type.values())} relationships"
        )
        return self.result

    def _create_hierarchy(self, containment: ContainmentResult):
        registry = containment.registry

        for cls in containment.app.classes:
            class_node_id = registry.lookup(cls)

            # parent_name without a parent reference: external superclass, no edge
            if cls.parent is not None:
                parent_node_id = self._resolve(containment, cls.parent, RelationType.EXTENDS, cls.name)
                if parent_node_id is not None:
                    self._relate(class_node_id, parent_node_id, RelationType.EXTENDS)

            for interface in cls.interfaces:
                interface_node_id = self._resolve(containment, interface, RelationType.IMPLEMENTS, cls.name)
                if interface_node_id is not None:
                    self._relate(class_node_id, interface_node_id, RelationType.IMPLEMENTS)

    def _create_call_graph(self, containment: ContainmentResult):
        registry = containment.registry

        for cls in containment.app.classes:
            for method in cls.methods:
                caller_node_id = registry.lookup(method)

                for called in method.called_methods:
                    callee_node_id = self._resolve(containment, called, RelationType.CALLS, method.full_name)
                    if callee_node_id is not None:
                        self._relate(caller_node_id, callee_node_id, RelationType.CALLS)

    def _resolve(self, containment: ContainmentResult, target, rel_type: RelationType,
                 source_name: str) -> Optional[int]:
        node_id = containment.registry.find(target)
        if node_id is not None:
            return node_id

        target_name = getattr(target, 'full_name', target.name)
        message = (
            f"{rel_type.value} target '{target_name}' of '{source_name}' "
            f"is outside application '{containment.app.name}'"
        )
        if self.policy is UnresolvedReferencePolicy.STRICT:
            raise UnresolvedReferenceError(message, rel_type.value, target_name)

        logger.debug(f"Dropped reference: {message}")
        self.result.dropped_references += 1
        return None

    def _relate(self, source_id: int, target_id: int, rel_type: RelationType):
        self.transaction.create_relationship(
            GraphRelationship(source_id=source_id, target_id=target_id, type=rel_type)
        )
        counts = self.result.relationships_by_type
        counts[rel_type.value] = counts.get(rel_type.value, 0) + 1
