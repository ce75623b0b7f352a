"""
Node materializer: one entity in, one node out.

Stamps the label, the application key, the entity's scalar attributes and one
property per metric. Metrics are written after the scalar attributes; a metric
sharing a name with an attribute, or with an earlier metric, overwrites it.
No relationship is created here.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional

from graph_store.database_manager import GraphTransaction
from graph_store.schemas import GraphNode, NodeLabel
from model_graph.entities import (
    Application,
    ArgumentEntity,
    ClassEntity,
    Metric,
    MethodEntity,
    Modifier,
    VariableEntity,
)
from model_graph.registry import IdentityRegistry

logger = logging.getLogger(__name__)

# 2014-06-05 17:42:03.127
DATE_ANALYSIS_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def format_analysis_date(moment: datetime) -> str:
    """Render `date_analysis` with millisecond precision."""
    return moment.strftime(DATE_ANALYSIS_FORMAT)[:-3]


def modifier_token(modifier: Modifier) -> str:
    return modifier.name.lower()


class NodeMaterializer:
    """Creates nodes inside an open transaction and registers them."""

    def __init__(self, transaction: GraphTransaction, registry: IdentityRegistry,
                 app_key: str, now: Optional[Callable[[], datetime]] = None):
        self.transaction = transaction
        self.registry = registry
        self.app_key = app_key
        self.now = now or datetime.now
        self.nodes_by_label: Dict[str, int] = {}

    def _create(self, label: NodeLabel, properties: Dict[str, Any],
                metrics: Iterable[Metric] = ()) -> int:
        properties = dict(properties)
        for metric in metrics:
            properties[metric.name] = metric.value

        node = GraphNode(label=label, app_key=self.app_key, properties=properties)
        node_id = self.transaction.create_node(node)
        self.nodes_by_label[label.value] = self.nodes_by_label.get(label.value, 0) + 1
        return node_id

    def materialize_app(self, app: Application) -> int:
        return self._create(NodeLabel.APP, {
            'name': app.name,
            'category': app.category,
            'package': app.package,
            'developer': app.developer,
            'rating': app.rating,
            'nb_download': app.nb_download,
            'date_download': app.release_date,
            'date_analysis': format_analysis_date(self.now()),
            'size': app.size,
            'price': app.price,
        }, app.metrics)

    def materialize_class(self, cls: ClassEntity) -> int:
        properties = {
            'name': cls.name,
            'modifier': modifier_token(cls.modifier),
        }
        if cls.parent_name is not None:
            properties['parent_name'] = cls.parent_name

        node_id = self._create(NodeLabel.CLASS, properties, cls.metrics)
        return self.registry.register(cls, node_id)

    def materialize_variable(self, variable: VariableEntity) -> int:
        node_id = self._create(NodeLabel.VARIABLE, {
            'name': variable.name,
            'modifier': modifier_token(variable.modifier),
            'type': variable.type_name,
        }, variable.metrics)
        return self.registry.register(variable, node_id)

    def materialize_method(self, method: MethodEntity) -> int:
        node_id = self._create(NodeLabel.METHOD, {
            'name': method.name,
            'modifier': modifier_token(method.modifier),
            'full_name': method.full_name,
            'return_type': method.return_type,
        }, method.metrics)
        return self.registry.register(method, node_id)

    def materialize_argument(self, argument: ArgumentEntity) -> int:
        return self._create(NodeLabel.ARGUMENT, {
            'name': argument.name,
            'position': argument.position,
        })
