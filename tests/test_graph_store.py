"""
Tests for the SQLite graph store

Covers schema setup, transactional commit/rollback, storage error wrapping
and the read-side helpers.
"""

import pytest
import sqlite3
import tempfile
import shutil
from pathlib import Path
import sys
import os

# Add parent directory to path to import modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from graph_store.database_manager import GraphDatabaseManager, get_graph_database
from graph_store.database_setup import setup_graph_database
from graph_store.exceptions import GraphStorageError
from graph_store.schemas import GraphNode, GraphRelationship, NodeLabel, RelationType


def make_node(label=NodeLabel.METHOD, app_key="app-1", **properties):
    return GraphNode(label=label, app_key=app_key, properties=properties)


def relate(source_id, target_id, rel_type):
    return GraphRelationship(source_id=source_id, target_id=target_id, type=rel_type)


class TestDatabaseSetup:
    """Schema creation."""

    @pytest.fixture
    def temp_workspace(self):
        temp_dir = tempfile.mkdtemp()
        yield temp_dir
        shutil.rmtree(temp_dir, ignore_errors=True)

    def test_functionality_checks_pass(self, temp_workspace):
        db_path = Path(temp_workspace) / "graph.db"
        setup = setup_graph_database(str(db_path))

        results = setup.test_database_functionality()
        setup.close()

        assert all(results.values()), results

    def test_functionality_check_leaves_no_rows(self, temp_workspace):
        db_path = Path(temp_workspace) / "graph.db"
        setup = setup_graph_database(str(db_path))
        setup.test_database_functionality()
        setup.close()

        manager = GraphDatabaseManager(str(db_path))
        try:
            assert manager.count_nodes() == 0
        finally:
            manager.close()

    def test_indexes_are_optional(self, temp_workspace):
        db_path = Path(temp_workspace) / "graph.db"

        setup = setup_graph_database(str(db_path), create_indexes=False)
        indexes = setup.connection.execute(
            "SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_%'"
        ).fetchall()
        setup.close()
        assert indexes == []

        setup = setup_graph_database(str(db_path), create_indexes=True)
        indexes = {row[0] for row in setup.connection.execute(
            "SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_%'"
        ).fetchall()}
        setup.close()
        assert 'idx_nodes_app_key' in indexes
        assert 'idx_relationships_type' in indexes


class TestGraphDatabaseManager:
    """Transactional writes and read helpers."""

    @pytest.fixture
    def temp_workspace(self):
        temp_dir = tempfile.mkdtemp()
        yield temp_dir
        shutil.rmtree(temp_dir, ignore_errors=True)

    @pytest.fixture
    def test_database(self, temp_workspace):
        db_path = Path(temp_workspace) / "graph.db"
        setup_graph_database(str(db_path)).close()
        return str(db_path)

    @pytest.fixture
    def db_manager(self, test_database):
        manager = GraphDatabaseManager(test_database)
        yield manager
        manager.close()

    def test_transaction_commits_nodes_and_relationships(self, db_manager):
        with db_manager.transaction() as tx:
            class_id = tx.create_node(make_node(NodeLabel.CLASS, name="Main"))
            method_id = tx.create_node(make_node(NodeLabel.METHOD, name="run"))
            tx.create_relationship(relate(class_id, method_id, RelationType.CLASS_OWNS_METHOD))

        assert db_manager.count_nodes() == 2
        outgoing = db_manager.get_outgoing_relationships(class_id)
        assert len(outgoing) == 1
        assert outgoing[0].target_id == method_id
        assert outgoing[0].type == RelationType.CLASS_OWNS_METHOD

    def test_transaction_rolls_back_on_any_exception(self, db_manager):
        with pytest.raises(RuntimeError):
            with db_manager.transaction() as tx:
                tx.create_node(make_node(name="lost"))
                raise RuntimeError("boom")

        assert db_manager.count_nodes() == 0

    def test_dangling_relationship_raises_storage_error(self, db_manager):
        with pytest.raises(GraphStorageError) as exc_info:
            with db_manager.transaction() as tx:
                node_id = tx.create_node(make_node(name="orphan"))
                tx.create_relationship(relate(node_id, node_id + 1000, RelationType.CALLS))

        assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)
        assert db_manager.count_nodes() == 0
        assert db_manager.count_relationships() == 0

    def test_properties_are_stored_as_copied_values(self, db_manager):
        with db_manager.transaction() as tx:
            node_id = tx.create_node(make_node(
                NodeLabel.CLASS, name="Main", LOC=10, ratio=0.5, is_final=True, parent_name=None
            ))

        node = db_manager.get_node(node_id)
        assert node.label == NodeLabel.CLASS
        assert node.app_key == "app-1"
        assert node.properties == {
            'name': "Main", 'LOC': 10, 'ratio': 0.5, 'is_final': True, 'parent_name': None
        }

    def test_get_node_missing_returns_none(self, db_manager):
        assert db_manager.get_node(12345) is None

    def test_nodes_filtered_by_label_and_app(self, db_manager):
        with db_manager.transaction() as tx:
            tx.create_node(make_node(NodeLabel.CLASS, "app-1", name="A"))
            tx.create_node(make_node(NodeLabel.CLASS, "app-2", name="A"))
            tx.create_node(make_node(NodeLabel.METHOD, "app-1", name="m"))

        assert db_manager.count_nodes() == 3
        assert db_manager.count_nodes(app_key="app-1") == 2
        assert db_manager.count_nodes(label="Class") == 2
        assert db_manager.count_nodes(app_key="app-2", label=NodeLabel.CLASS) == 1
        assert len(db_manager.get_nodes_by_label("Class")) == 2
        assert len(db_manager.find_nodes(NodeLabel.CLASS, "A", app_key="app-2")) == 1
        assert db_manager.find_nodes(NodeLabel.CLASS, "m") == []

    def test_find_callers_walks_call_chain(self, db_manager):
        with db_manager.transaction() as tx:
            m1 = tx.create_node(make_node(name="m1", full_name="m1#A"))
            m2 = tx.create_node(make_node(name="m2", full_name="m2#A"))
            m3 = tx.create_node(make_node(name="m3", full_name="m3#B"))
            tx.create_relationship(relate(m1, m2, RelationType.CALLS))
            tx.create_relationship(relate(m2, m3, RelationType.CALLS))

        callers = db_manager.find_callers(m3)
        assert [(c['name'], c['depth']) for c in callers] == [("m2", 1), ("m1", 2)]
        assert callers[1]['full_name'] == "m1#A"

        assert [c['name'] for c in db_manager.find_callers(m3, max_depth=1)] == ["m2"]

    def test_find_callers_terminates_on_recursion(self, db_manager):
        with db_manager.transaction() as tx:
            a = tx.create_node(make_node(name="a"))
            b = tx.create_node(make_node(name="b"))
            tx.create_relationship(relate(a, b, RelationType.CALLS))
            tx.create_relationship(relate(b, a, RelationType.CALLS))

        callers = db_manager.find_callers(a, max_depth=10)
        assert [c['name'] for c in callers] == ["b"]

    def test_delete_app_cascades_relationships(self, db_manager):
        with db_manager.transaction() as tx:
            a = tx.create_node(make_node(NodeLabel.CLASS, "doomed", name="A"))
            m = tx.create_node(make_node(NodeLabel.METHOD, "doomed", name="m"))
            tx.create_relationship(relate(a, m, RelationType.CLASS_OWNS_METHOD))
            tx.create_node(make_node(NodeLabel.CLASS, "kept", name="B"))

        deleted = db_manager.delete_app("doomed")

        assert deleted == 2
        assert db_manager.count_nodes() == 1
        assert db_manager.count_relationships() == 0

    def test_delete_insertion_follows_ownership_only(self, db_manager):
        with db_manager.transaction() as tx:
            first_app = tx.create_node(make_node(NodeLabel.APP, "same", name="Notes"))
            first_cls = tx.create_node(make_node(NodeLabel.CLASS, "same", name="A"))
            tx.create_relationship(relate(first_app, first_cls, RelationType.APP_OWNS_CLASS))

            second_app = tx.create_node(make_node(NodeLabel.APP, "same", name="Notes"))
            cls = tx.create_node(make_node(NodeLabel.CLASS, "same", name="A"))
            var = tx.create_node(make_node(NodeLabel.VARIABLE, "same", name="v"))
            method = tx.create_node(make_node(NodeLabel.METHOD, "same", name="m"))
            arg = tx.create_node(make_node(NodeLabel.ARGUMENT, "same", name="x"))
            tx.create_relationship(relate(second_app, cls, RelationType.APP_OWNS_CLASS))
            tx.create_relationship(relate(cls, var, RelationType.CLASS_OWNS_VARIABLE))
            tx.create_relationship(relate(cls, method, RelationType.CLASS_OWNS_METHOD))
            tx.create_relationship(relate(method, arg, RelationType.METHOD_OWNS_ARGUMENT))
            tx.create_relationship(relate(method, var, RelationType.USES))
            # Non-ownership edge into the other insertion is not followed
            tx.create_relationship(relate(cls, first_cls, RelationType.EXTENDS))

        deleted = db_manager.delete_insertion(second_app)

        assert deleted == 5
        assert db_manager.count_nodes(app_key="same") == 2
        assert db_manager.get_node(first_cls) is not None
        assert db_manager.count_relationships() == 1

    def test_delete_insertion_requires_app_node(self, db_manager):
        with db_manager.transaction() as tx:
            cls = tx.create_node(make_node(NodeLabel.CLASS, name="A"))

        assert db_manager.delete_insertion(cls) == 0
        assert db_manager.count_nodes() == 1

    def test_statistics(self, db_manager):
        with db_manager.transaction() as tx:
            a = tx.create_node(make_node(NodeLabel.CLASS, name="A"))
            b = tx.create_node(make_node(NodeLabel.CLASS, name="B"))
            tx.create_relationship(relate(b, a, RelationType.EXTENDS))

        stats = db_manager.get_statistics()
        assert stats['nodes_total'] == 2
        assert stats['relationships_total'] == 1
        assert stats['node_labels'] == {'Class': 2}
        assert stats['relationship_types'] == {'EXTENDS': 1}
        assert stats['applications'] == {'app-1': 2}

    def test_get_graph_database_verifies_connection(self, test_database):
        manager = get_graph_database(test_database)
        try:
            assert manager.count_nodes() == 0
        finally:
            manager.close()
        assert manager.connection is None
