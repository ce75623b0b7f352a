"""
Error hierarchy for the model-to-graph transformation.

Integrity errors mean the application model broke the containment contract
(an entity referenced before it was given a node). Storage errors come from
the graph store. A `PartialInsertionError` tells the caller that containment
data was committed but the derived relationships were not.
"""

from typing import Optional

from graph_store.exceptions import GraphStorageError

__all__ = [
    "GraphStorageError",
    "ModelGraphError",
    "PartialInsertionError",
    "RegistryIntegrityError",
    "SessionStateError",
    "UnresolvedReferenceError",
]


class ModelGraphError(Exception):
    """Base class for transformation errors."""


class RegistryIntegrityError(ModelGraphError):
    """An entity was looked up before being registered, or registered twice."""


class UnresolvedReferenceError(RegistryIntegrityError):
    """A hierarchy or call target lies outside the inserted application."""

    def __init__(self, message: str, relation_type: str, target_name: str):
        super().__init__(message)
        self.relation_type = relation_type
        self.target_name = target_name


class SessionStateError(ModelGraphError):
    """An insertion session was asked to run more than once."""


class PartialInsertionError(ModelGraphError):
    """
    The derivation phase failed after the containment phase was committed.

    The application's nodes and ownership relationships are in the store
    under `app_key`; no derived relationship from the failed phase is.
    `GraphDatabaseManager.delete_insertion(app_node_id)` removes the
    committed part without touching other insertions of the same key.
    """

    def __init__(self, message: str, app_key: str, app_node_id: Optional[int]):
        super().__init__(message)
        self.app_key = app_key
        self.app_node_id = app_node_id
