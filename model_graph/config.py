"""
Model Graph Configuration

Environment-driven settings for the graph inserter. Values come from the
process environment, after loading a `.env` file when present.
"""

import os
import logging

from dotenv import load_dotenv

from model_graph.derived_builder import UnresolvedReferencePolicy

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ModelGraphConfig:
    """Centralized configuration for the model graph inserter"""

    def __init__(self):
        """Initialize configuration with environment variables and defaults"""
        load_dotenv()

        self.db_path = os.getenv("MODEL_GRAPH_DB_PATH", "model_graph.db")
        self.db_timeout = self._get_float("MODEL_GRAPH_DB_TIMEOUT", 30.0)
        self.unresolved_policy = os.getenv("MODEL_GRAPH_UNRESOLVED_POLICY", "drop").strip().lower()
        self.create_indexes = os.getenv("MODEL_GRAPH_CREATE_INDEXES", "true").strip().lower() in _TRUE_VALUES

        self._validate_config()

    def _get_float(self, name: str, default: float) -> float:
        raw = os.getenv(name)
        if raw is None:
            return default
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Invalid {name} '{raw}', using {default}")
            return default

    def _validate_config(self) -> None:
        """Validate configuration, falling back to defaults on bad values"""
        if not self.db_path:
            logger.warning("Empty MODEL_GRAPH_DB_PATH, using 'model_graph.db'")
            self.db_path = "model_graph.db"

        if self.db_timeout <= 0:
            logger.warning(f"Invalid database timeout '{self.db_timeout}', using 30.0")
            self.db_timeout = 30.0

        try:
            self.unresolved_policy = UnresolvedReferencePolicy(self.unresolved_policy)
        except ValueError:
            logger.warning(f"Invalid unresolved reference policy '{self.unresolved_policy}', using 'drop'")
            self.unresolved_policy = UnresolvedReferencePolicy.DROP

        logger.debug(f"Model graph config: {self.as_dict()}")

    def as_dict(self) -> dict:
        return {
            "db_path": self.db_path,
            "db_timeout": self.db_timeout,
            "unresolved_policy": self.unresolved_policy.value,
            "create_indexes": self.create_indexes,
        }


model_graph_config = ModelGraphConfig()
