"""
Insertion Session - one application, two atomic units of work.

Unit 1 runs the ContainmentBuilder and commits. Unit 2 runs the
DerivedGraphBuilder over unit 1's result and commits. A failure in unit 1
leaves nothing behind. A failure in unit 2 rolls back unit 2 only; the
committed containment data stays and the caller receives a
PartialInsertionError naming it.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional

from graph_store.database_manager import GraphDatabaseManager
from model_graph.containment_builder import ContainmentBuilder, ContainmentResult
from model_graph.derived_builder import DerivedGraphBuilder, UnresolvedReferencePolicy
from model_graph.entities import Application
from model_graph.exceptions import PartialInsertionError, SessionStateError
from model_graph.registry import IdentityRegistry

logger = logging.getLogger(__name__)


@dataclass
class InsertionResult:
    """Results from inserting one application."""
    app_key: str
    app_node_id: int
    nodes_by_label: Dict[str, int] = field(default_factory=dict)
    relationships_by_type: Dict[str, int] = field(default_factory=dict)
    dropped_references: int = 0
    processing_time: float = 0.0

    @property
    def nodes_created(self) -> int:
        return sum(self.nodes_by_label.values())

    @property
    def relationships_created(self) -> int:
        return sum(self.relationships_by_type.values())


class InsertionSession:
    """
    Inserts a single application into the graph.

    Owns a fresh IdentityRegistry and can run exactly once; insert another
    application with another session.
    """

    def __init__(self, database: GraphDatabaseManager, app: Application,
                 policy: UnresolvedReferencePolicy = UnresolvedReferencePolicy.DROP,
                 now: Optional[Callable[[], datetime]] = None):
        self.database = database
        self.app = app
        self.policy = UnresolvedReferencePolicy(policy)
        self.now = now
        self.registry = IdentityRegistry()
        self._started = False

    def run(self) -> InsertionResult:
        """
        Insert the application.

        Returns:
            InsertionResult with node and relationship counts

        Raises:
            RegistryIntegrityError: containment contract broken; nothing committed
            GraphStorageError: the store rejected a containment write; nothing committed
            PartialInsertionError: derivation failed; containment data committed
            SessionStateError: the session already ran
        """
        if self._started:
            raise SessionStateError(f"Session for '{self.app.name}' has already run")
        self._started = True

        start_time = time.time()
        logger.info(f"=== Inserting application '{self.app.name}' (key {self.app.key}) ===")

        containment = self._run_containment()

        try:
            with self.database.transaction() as tx:
                derivation = DerivedGraphBuilder(tx, self.policy).build(containment)
        except Exception as e:
            logger.error(
                f"Derivation failed for '{self.app.name}'; containment data for key "
                f"{self.app.key} remains committed: {e}"
            )
            raise PartialInsertionError(
                f"Derived relationships of '{self.app.name}' were not inserted: {e}",
                app_key=self.app.key,
                app_node_id=containment.app_node_id,
            ) from e

        relationships = dict(containment.relationships_by_type)
        for rel_type, count in derivation.relationships_by_type.items():
            relationships[rel_type] = relationships.get(rel_type, 0) + count

        result = InsertionResult(
            app_key=self.app.key,
            app_node_id=containment.app_node_id,
            nodes_by_label=dict(containment.nodes_by_label),
            relationships_by_type=relationships,
            dropped_references=derivation.dropped_references,
            processing_time=time.time() - start_time,
        )

        logger.info(f"=== Insertion of '{self.app.name}' completed ===")
        logger.info(f"  Nodes created: {result.nodes_created}")
        logger.info(f"  Relationships created: {result.relationships_created}")
        logger.info(f"  Processing time: {result.processing_time:.2f} seconds")
        return result

    def _run_containment(self) -> ContainmentResult:
        with self.database.transaction() as tx:
            builder = ContainmentBuilder(tx, self.registry, self.app.key, now=self.now)
            return builder.build(self.app)
