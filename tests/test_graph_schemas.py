"""
Unit Tests for the graph record schemas
"""

import pytest
from pydantic import ValidationError
import sys
import os

# Add parent directory to path to import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from graph_store.schemas import GraphNode, GraphRelationship, NodeLabel, RelationType


class TestGraphNode:

    def test_label_accepts_string_value(self):
        node = GraphNode(label="Variable", app_key="k")
        assert node.label is NodeLabel.VARIABLE
        assert node.properties == {}
        assert node.id is None

    def test_app_key_must_be_non_empty(self):
        with pytest.raises(ValidationError):
            GraphNode(label=NodeLabel.CLASS, app_key="")

    def test_unknown_label_rejected(self):
        with pytest.raises(ValidationError):
            GraphNode(label="Package", app_key="k")

    def test_properties_must_be_scalars(self):
        with pytest.raises(ValidationError):
            GraphNode(label=NodeLabel.CLASS, app_key="k", properties={'interfaces': ["A", "B"]})

    def test_property_names_must_be_non_empty(self):
        with pytest.raises(ValidationError):
            GraphNode(label=NodeLabel.CLASS, app_key="k", properties={'': 1})

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            GraphNode(label=NodeLabel.CLASS, app_key="k", name="A")


class TestGraphRelationship:

    def test_vocabulary(self):
        assert {t.value for t in RelationType} == {
            "APP_OWNS_CLASS", "CLASS_OWNS_VARIABLE", "CLASS_OWNS_METHOD",
            "METHOD_OWNS_ARGUMENT", "USES", "EXTENDS", "IMPLEMENTS", "CALLS",
        }
        assert {label.value for label in NodeLabel} == {"App", "Class", "Method", "Variable", "Argument"}

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            GraphRelationship(source_id=1, target_id=2, type="OVERRIDES")
