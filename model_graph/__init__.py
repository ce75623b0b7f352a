"""
Model-to-graph transformation.

Turns an application model (classes, methods, variables, arguments and their
metrics) into a property graph in two passes:
- ContainmentBuilder: every entity becomes a node, linked to its owner
- DerivedGraphBuilder: inheritance and call relationships, once all nodes exist
"""

from .entities import Application, ClassEntity, MethodEntity, VariableEntity, ArgumentEntity, Metric, Modifier
from .inserter import ModelGraphInserter, get_model_graph_inserter
from .session import InsertionResult, InsertionSession

__all__ = [
    "Application",
    "ArgumentEntity",
    "ClassEntity",
    "InsertionResult",
    "InsertionSession",
    "Metric",
    "MethodEntity",
    "ModelGraphInserter",
    "Modifier",
    "VariableEntity",
    "get_model_graph_inserter",
]
