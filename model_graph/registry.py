"""
Identity registry for one insertion session.

Maps each class, method and variable instance to the id of the node created
for it. Identity is never shared across categories, so each category has its
own table. Arguments are not tracked: nothing refers to them after their
owning method has been written.
"""

import logging
from typing import Dict, Optional, Union

from model_graph.entities import ClassEntity, MethodEntity, VariableEntity
from model_graph.exceptions import RegistryIntegrityError

logger = logging.getLogger(__name__)

RegisteredEntity = Union[ClassEntity, MethodEntity, VariableEntity]


class IdentityRegistry:
    """Entity instance -> node id, scoped to a single application insertion."""

    def __init__(self):
        self._classes: Dict[ClassEntity, int] = {}
        self._methods: Dict[MethodEntity, int] = {}
        self._variables: Dict[VariableEntity, int] = {}

    def _scope(self, entity: RegisteredEntity) -> Dict:
        if isinstance(entity, ClassEntity):
            return self._classes
        if isinstance(entity, MethodEntity):
            return self._methods
        if isinstance(entity, VariableEntity):
            return self._variables
        raise TypeError(f"Entities of type {type(entity).__name__} are not registered")

    def register(self, entity: RegisteredEntity, node_id: int) -> int:
        """
        Record the node created for an entity.

        Raises:
            RegistryIntegrityError: the entity already has a node
        """
        scope = self._scope(entity)
        if entity in scope:
            raise RegistryIntegrityError(
                f"{type(entity).__name__} '{entity.name}' already has node {scope[entity]}"
            )
        scope[entity] = node_id
        return node_id

    def lookup(self, entity: RegisteredEntity) -> int:
        """
        Node id of a registered entity.

        Raises:
            RegistryIntegrityError: the entity was never registered
        """
        node_id = self._scope(entity).get(entity)
        if node_id is None:
            raise RegistryIntegrityError(
                f"{type(entity).__name__} '{entity.name}' has no node in this session"
            )
        return node_id

    def find(self, entity: RegisteredEntity) -> Optional[int]:
        """Node id of an entity, or None when it was never registered."""
        return self._scope(entity).get(entity)

    def __contains__(self, entity) -> bool:
        return self.find(entity) is not None

    def counts(self) -> Dict[str, int]:
        return {
            'classes': len(self._classes),
            'methods': len(self._methods),
            'variables': len(self._variables),
        }
