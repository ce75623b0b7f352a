"""
Model Graph Inserter

Entry point for writing application models into the graph store. Holds the
store connection for its lifetime and runs one InsertionSession per
application, so identity data never leaks from one application to the next.
"""

import logging
from typing import Optional

from graph_store.database_manager import GraphDatabaseManager
from graph_store.database_setup import setup_graph_database
from model_graph.config import ModelGraphConfig, model_graph_config
from model_graph.entities import Application
from model_graph.session import InsertionResult, InsertionSession

logger = logging.getLogger(__name__)


class ModelGraphInserter:
    """
    Persists application models as property graphs.

    Usage:
        with ModelGraphInserter("apps.db") as inserter:
            result = inserter.insert_app(app)
    """

    def __init__(self, db_path: Optional[str] = None, config: Optional[ModelGraphConfig] = None):
        self.config = config or model_graph_config
        self.db_path = db_path or self.config.db_path

        setup = setup_graph_database(self.db_path, create_indexes=self.config.create_indexes)
        setup.close()

        self.database = GraphDatabaseManager(self.db_path, timeout=self.config.db_timeout)
        self.apps_inserted = 0

        logger.info(f"Model graph inserter initialized with database: {self.db_path}")

    def insert_app(self, app: Application) -> InsertionResult:
        """
        Insert one application in two committed phases.

        Args:
            app: Fully built application model, left untouched

        Returns:
            InsertionResult for the application
        """
        session = InsertionSession(self.database, app, policy=self.config.unresolved_policy)
        result = session.run()
        self.apps_inserted += 1
        return result

    def close(self):
        self.database.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def get_model_graph_inserter(db_path: Optional[str] = None) -> ModelGraphInserter:
    """Get a ModelGraphInserter configured from the environment."""
    return ModelGraphInserter(db_path)
