"""
Pydantic models for the property graph vocabulary.

Defines the fixed set of node labels and relationship types written by the
model-to-graph transformation, and the records exchanged with the store.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NodeLabel(str, Enum):
    """
    Category label stamped on every node.

    One label per kind of entity in the application model.
    """
    APP = "App"
    CLASS = "Class"
    METHOD = "Method"
    VARIABLE = "Variable"
    ARGUMENT = "Argument"


class RelationType(str, Enum):
    """
    Relationship types between nodes.

    Containment (created while walking the model):
        APP_OWNS_CLASS, CLASS_OWNS_VARIABLE, CLASS_OWNS_METHOD,
        METHOD_OWNS_ARGUMENT, USES
    Derived (created once every entity has a node):
        EXTENDS, IMPLEMENTS, CALLS
    """
    APP_OWNS_CLASS = "APP_OWNS_CLASS"
    CLASS_OWNS_VARIABLE = "CLASS_OWNS_VARIABLE"
    CLASS_OWNS_METHOD = "CLASS_OWNS_METHOD"
    METHOD_OWNS_ARGUMENT = "METHOD_OWNS_ARGUMENT"
    USES = "USES"
    EXTENDS = "EXTENDS"
    IMPLEMENTS = "IMPLEMENTS"
    CALLS = "CALLS"


class GraphNode(BaseModel):
    """
    A node of the property graph.

    `id` is assigned by the store on creation and is None before that.
    Properties are copied scalar values, never references back into the
    application model.
    """
    id: Optional[int] = Field(None, description="Store-assigned node identifier")
    label: NodeLabel = Field(..., description="Category of the node")
    app_key: str = Field(..., min_length=1, description="Key of the application that created the node")
    properties: Dict[str, Any] = Field(default_factory=dict, description="Named scalar properties")

    @field_validator('properties')
    @classmethod
    def properties_must_be_scalar(cls, v):
        """Only JSON scalars can be stored as node properties."""
        for key, value in v.items():
            if not key:
                raise ValueError('Property names must be non-empty')
            if value is not None and not isinstance(value, (str, int, float, bool)):
                raise ValueError(
                    f"Property '{key}' must hold a scalar value, got {type(value).__name__}"
                )
        return v

    model_config = ConfigDict(validate_assignment=True, extra="forbid")


class GraphRelationship(BaseModel):
    """A directed, typed relationship between two stored nodes."""
    id: Optional[int] = Field(None, description="Store-assigned relationship identifier")
    source_id: int = Field(..., description="Node the relationship starts from")
    target_id: int = Field(..., description="Node the relationship points to")
    type: RelationType = Field(..., description="Relationship type")
    properties: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(validate_assignment=True, extra="forbid")
