"""
Containment Builder - Phase 1 of the Model-to-Graph Insertion

Walks the application top-down (application, classes, then each class's
variables before its methods) and gives every entity its node. Ownership
relationships and a method's USES relationships are created on the way,
since their targets already exist when they are reached.

Produces the ContainmentResult that the derivation phase requires.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional

from graph_store.database_manager import GraphTransaction
from graph_store.schemas import GraphRelationship, RelationType
from model_graph.entities import Application, ClassEntity, MethodEntity
from model_graph.exceptions import RegistryIntegrityError
from model_graph.materializer import NodeMaterializer
from model_graph.registry import IdentityRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContainmentResult:
    """
    Proof that the containment phase ran over a whole application.

    The only accepted input of DerivedGraphBuilder. Holds the registry in
    which every class, method and variable of `app` has a node.
    """
    app: Application
    app_key: str
    app_node_id: int
    registry: IdentityRegistry = field(repr=False)
    nodes_by_label: Dict[str, int] = field(default_factory=dict)
    relationships_by_type: Dict[str, int] = field(default_factory=dict)


class ContainmentBuilder:
    """
    Phase 1: materializes every entity and links it to its owner.

    Raises RegistryIntegrityError when a method uses a variable that has no
    node yet (a variable of a class visited later).
    """

    def __init__(self, transaction: GraphTransaction, registry: IdentityRegistry,
                 app_key: str, now: Optional[Callable[[], datetime]] = None):
        self.transaction = transaction
        self.registry = registry
        self.app_key = app_key
        self.materializer = NodeMaterializer(transaction, registry, app_key, now=now)
        self.relationships_by_type: Dict[str, int] = {}

    def build(self, app: Application) -> ContainmentResult:
        """
        Insert the application's nodes and containment relationships.

        Args:
            app: Fully built application model

        Returns:
            ContainmentResult for the derivation phase
        """
        logger.info(f"Containment phase started for '{app.name}' ({len(app.classes)} classes)")

        app_node_id = self.materializer.materialize_app(app)

        for cls in app.classes:
            self._insert_class(app_node_id, cls)

        result = ContainmentResult(
            app=app,
            app_key=self.app_key,
            app_node_id=app_node_id,
            registry=self.registry,
            nodes_by_label=dict(self.materializer.nodes_by_label),
            relationships_by_type=dict(self.relationships_by_type),
        )

        logger.info(
            f"Containment phase completed: {sum(result.nodes_by_label.values())} nodes, "
            f"{sum(result.relationships_by_type.values())} relationships"
        )
        return result

    def _insert_class(self, app_node_id: int, cls: ClassEntity) -> int:
        class_node_id = self.materializer.materialize_class(cls)
        self._relate(app_node_id, class_node_id, RelationType.APP_OWNS_CLASS)

        # Variables first so that methods can find their siblings
        for variable in cls.variables:
            variable_node_id = self.materializer.materialize_variable(variable)
            self._relate(class_node_id, variable_node_id, RelationType.CLASS_OWNS_VARIABLE)

        for method in cls.methods:
            self._insert_method(class_node_id, method)

        return class_node_id

    def _insert_method(self, class_node_id: int, method: MethodEntity) -> int:
        method_node_id = self.materializer.materialize_method(method)
        self._relate(class_node_id, method_node_id, RelationType.CLASS_OWNS_METHOD)

        for argument in method.arguments:
            argument_node_id = self.materializer.materialize_argument(argument)
            self._relate(method_node_id, argument_node_id, RelationType.METHOD_OWNS_ARGUMENT)

        for variable in method.used_variables:
            try:
                variable_node_id = self.registry.lookup(variable)
            except RegistryIntegrityError as e:
                raise RegistryIntegrityError(
                    f"Method '{method.full_name}' uses variable '{variable.name}' "
                    f"before it was inserted: {e}"
                ) from e
            self._relate(method_node_id, variable_node_id, RelationType.USES)

        return method_node_id

    def _relate(self, source_id: int, target_id: int, rel_type: RelationType):
        self.transaction.create_relationship(
            GraphRelationship(source_id=source_id, target_id=target_id, type=rel_type)
        )
        self.relationships_by_type[rel_type.value] = self.relationships_by_type.get(rel_type.value, 0) + 1
