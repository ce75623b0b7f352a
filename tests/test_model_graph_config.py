"""
Unit Tests for ModelGraphConfig

Environment parsing and fallback to defaults on invalid values.
"""

import pytest
import sys
import os

# Add parent directory to path to import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from model_graph.config import ModelGraphConfig
from model_graph.derived_builder import UnresolvedReferencePolicy

ENV_VARS = [
    "MODEL_GRAPH_DB_PATH",
    "MODEL_GRAPH_DB_TIMEOUT",
    "MODEL_GRAPH_UNRESOLVED_POLICY",
    "MODEL_GRAPH_CREATE_INDEXES",
]


class TestModelGraphConfig:

    @pytest.fixture(autouse=True)
    def clean_environment(self, monkeypatch):
        for name in ENV_VARS:
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        config = ModelGraphConfig()

        assert config.db_path == "model_graph.db"
        assert config.db_timeout == 30.0
        assert config.unresolved_policy is UnresolvedReferencePolicy.DROP
        assert config.create_indexes is True

    def test_values_from_environment(self, monkeypatch):
        monkeypatch.setenv("MODEL_GRAPH_DB_PATH", "/tmp/apps.db")
        monkeypatch.setenv("MODEL_GRAPH_DB_TIMEOUT", "5")
        monkeypatch.setenv("MODEL_GRAPH_UNRESOLVED_POLICY", "STRICT")
        monkeypatch.setenv("MODEL_GRAPH_CREATE_INDEXES", "no")

        config = ModelGraphConfig()

        assert config.as_dict() == {
            "db_path": "/tmp/apps.db",
            "db_timeout": 5.0,
            "unresolved_policy": "strict",
            "create_indexes": False,
        }

    def test_invalid_policy_falls_back_to_drop(self, monkeypatch):
        monkeypatch.setenv("MODEL_GRAPH_UNRESOLVED_POLICY", "ignore-everything")
        assert ModelGraphConfig().unresolved_policy is UnresolvedReferencePolicy.DROP

    @pytest.mark.parametrize("raw", ["soon", "-1", "0"])
    def test_invalid_timeout_falls_back(self, monkeypatch, raw):
        monkeypatch.setenv("MODEL_GRAPH_DB_TIMEOUT", raw)
        assert ModelGraphConfig().db_timeout == 30.0

    def test_empty_db_path_falls_back(self, monkeypatch):
        monkeypatch.setenv("MODEL_GRAPH_DB_PATH", "")
        assert ModelGraphConfig().db_path == "model_graph.db"
