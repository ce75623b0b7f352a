"""
Database Manager for the Model Graph

Provides the transactional write interface used by the model-to-graph
transformation and the read helpers used to inspect the resulting graph.
"""

import sqlite3
import json
import logging
from typing import Dict, List, Optional, Any, Union
from pathlib import Path
from contextlib import contextmanager

from graph_store.exceptions import GraphStorageError
from graph_store.schemas import GraphNode, GraphRelationship, NodeLabel, RelationType

logger = logging.getLogger(__name__)


class GraphTransaction:
    """
    Write handle for one open transaction.

    Only obtained through `GraphDatabaseManager.transaction()`; every write
    made through it is committed or rolled back together.
    """

    def __init__(self, cursor: sqlite3.Cursor):
        self.cursor = cursor
        self.nodes_created = 0
        self.relationships_created = 0

    def create_node(self, node: GraphNode) -> int:
        """
        Persist a node and return its store-assigned id.

        Args:
            node: Node to create; its `id` is ignored

        Returns:
            Id of the new node
        """
        self.cursor.execute("""
            INSERT INTO nodes (label, app_key, properties)
            VALUES (?, ?, ?)
        """, (
            node.label.value,
            node.app_key,
            json.dumps(node.properties)
        ))
        self.nodes_created += 1
        node_id = self.cursor.lastrowid
        logger.debug(f"Created {node.label.value} node {node_id}")
        return node_id

    def create_relationship(self, relationship: GraphRelationship) -> int:
        """
        Persist a relationship between two existing nodes.

        Args:
            relationship: Relationship to create; its `id` is ignored

        Returns:
            Id of the new relationship
        """
        self.cursor.execute("""
            INSERT INTO relationships (source_id, target_id, type, properties)
            VALUES (?, ?, ?, ?)
        """, (
            relationship.source_id,
            relationship.target_id,
            relationship.type.value,
            json.dumps(relationship.properties)
        ))
        self.relationships_created += 1
        logger.debug(
            f"Created relationship: {relationship.source_id} "
            f"--{relationship.type.value}--> {relationship.target_id}"
        )
        return self.cursor.lastrowid


class GraphDatabaseManager:
    """
    High-level interface over the SQLite property graph.

    The connection is held exclusively by one insertion at a time; several
    applications may be inserted one after the other over the same manager.
    """

    def __init__(self, db_path: str = "model_graph.db", timeout: float = 30.0):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.connection = None
        self._connect()

    def _connect(self):
        """Establish database connection."""
        try:
            self.connection = sqlite3.connect(
                self.db_path,
                timeout=self.timeout
            )
            self.connection.row_factory = sqlite3.Row

            self.connection.execute("PRAGMA foreign_keys = ON")
            self.connection.execute("PRAGMA journal_mode = WAL")

        except sqlite3.Error as e:
            logger.error(f"Database connection failed: {e}")
            raise GraphStorageError(f"Could not open graph database {self.db_path}: {e}") from e

    @contextmanager
    def transaction(self):
        """
        Context manager for one atomic unit of graph writes.

        Commits when the block exits normally, rolls back on any exception.
        `sqlite3` errors are re-raised as GraphStorageError, everything else
        is re-raised unchanged.
        """
        tx = GraphTransaction(self.connection.cursor())
        try:
            yield tx
            self.connection.commit()
            logger.debug(
                f"Transaction committed: {tx.nodes_created} nodes, "
                f"{tx.relationships_created} relationships"
            )
        except sqlite3.Error as e:
            self.connection.rollback()
            logger.error(f"Transaction failed, rolled back: {e}")
            raise GraphStorageError(str(e)) from e
        except Exception as e:
            self.connection.rollback()
            logger.error(f"Transaction failed, rolled back: {e}")
            raise

    # ==================== NODE QUERIES ====================

    def _row_to_node(self, row: sqlite3.Row) -> GraphNode:
        return GraphNode(
            id=row['id'],
            label=row['label'],
            app_key=row['app_key'],
            properties=json.loads(row['properties'] or '{}')
        )

    def _row_to_relationship(self, row: sqlite3.Row) -> GraphRelationship:
        return GraphRelationship(
            id=row['id'],
            source_id=row['source_id'],
            target_id=row['target_id'],
            type=row['type'],
            properties=json.loads(row['properties'] or '{}')
        )

    def _fetch(self, query: str, params=()) -> List[sqlite3.Row]:
        try:
            return self.connection.execute(query, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Graph query failed: {e}")
            raise GraphStorageError(str(e)) from e

    def get_node(self, node_id: int) -> Optional[GraphNode]:
        """Retrieve a node by id, or None when absent."""
        rows = self._fetch("SELECT * FROM nodes WHERE id = ?", (node_id,))
        return self._row_to_node(rows[0]) if rows else None

    def get_nodes_by_label(self, label: Union[NodeLabel, str],
                           app_key: Optional[str] = None) -> List[GraphNode]:
        """
        Get all nodes carrying a label.

        Args:
            label: Node label to match
            app_key: Restrict to nodes of one application

        Returns:
            Matching nodes in creation order
        """
        label = NodeLabel(label).value
        if app_key is None:
            rows = self._fetch("SELECT * FROM nodes WHERE label = ? ORDER BY id", (label,))
        else:
            rows = self._fetch(
                "SELECT * FROM nodes WHERE label = ? AND app_key = ? ORDER BY id",
                (label, app_key)
            )
        return [self._row_to_node(row) for row in rows]

    def find_nodes(self, label: Union[NodeLabel, str], name: str,
                   app_key: Optional[str] = None) -> List[GraphNode]:
        """Find nodes of a label by their `name` property."""
        return [
            node for node in self.get_nodes_by_label(label, app_key)
            if node.properties.get('name') == name
        ]

    def count_nodes(self, app_key: Optional[str] = None,
                    label: Union[NodeLabel, str, None] = None) -> int:
        """Count nodes, optionally restricted to one application and/or label."""
        query = "SELECT COUNT(*) FROM nodes WHERE 1 = 1"
        params = []

        if app_key is not None:
            query += " AND app_key = ?"
            params.append(app_key)
        if label is not None:
            query += " AND label = ?"
            params.append(NodeLabel(label).value)

        return self._fetch(query, params)[0][0]

    # ==================== RELATIONSHIP QUERIES ====================

    def get_relationships(self, rel_type: Union[RelationType, str, None] = None) -> List[GraphRelationship]:
        """Get all relationships, optionally of a single type."""
        if rel_type is None:
            rows = self._fetch("SELECT * FROM relationships ORDER BY id")
        else:
            rows = self._fetch(
                "SELECT * FROM relationships WHERE type = ? ORDER BY id",
                (RelationType(rel_type).value,)
            )
        return [self._row_to_relationship(row) for row in rows]

    def get_outgoing_relationships(self, node_id: int,
                                   rel_type: Union[RelationType, str, None] = None) -> List[GraphRelationship]:
        """
        Get all relationships starting at a node.

        Args:
            node_id: Source node id
            rel_type: Optional filter by relationship type

        Returns:
            List of relationships
        """
        if rel_type:
            rows = self._fetch(
                "SELECT * FROM relationships WHERE source_id = ? AND type = ? ORDER BY id",
                (node_id, RelationType(rel_type).value)
            )
        else:
            rows = self._fetch(
                "SELECT * FROM relationships WHERE source_id = ? ORDER BY id",
                (node_id,)
            )
        return [self._row_to_relationship(row) for row in rows]

    def get_incoming_relationships(self, node_id: int,
                                   rel_type: Union[RelationType, str, None] = None) -> List[GraphRelationship]:
        """Get all relationships pointing to a node."""
        if rel_type:
            rows = self._fetch(
                "SELECT * FROM relationships WHERE target_id = ? AND type = ? ORDER BY id",
                (node_id, RelationType(rel_type).value)
            )
        else:
            rows = self._fetch(
                "SELECT * FROM relationships WHERE target_id = ? ORDER BY id",
                (node_id,)
            )
        return [self._row_to_relationship(row) for row in rows]

    def count_relationships(self, rel_type: Union[RelationType, str, None] = None) -> int:
        """Count relationships, optionally of a single type."""
        if rel_type is None:
            return self._fetch("SELECT COUNT(*) FROM relationships")[0][0]
        return self._fetch(
            "SELECT COUNT(*) FROM relationships WHERE type = ?",
            (RelationType(rel_type).value,)
        )[0][0]

    # ==================== GRAPH TRAVERSAL QUERIES ====================

    def find_callers(self, method_node_id: int, max_depth: int = 3) -> List[Dict]:
        """
        Find all methods that transitively call a method.

        Args:
            method_node_id: Target method node id
            max_depth: Maximum traversal depth

        Returns:
            List of caller rows (id, name, full_name, depth), nearest first
        """
        rows = self._fetch("""
            WITH RECURSIVE callers(id, depth) AS (
                SELECT n.id, 0 FROM nodes n WHERE n.id = ?

                UNION

                SELECT r.source_id, c.depth + 1
                FROM relationships r
                JOIN callers c ON r.target_id = c.id
                WHERE r.type = 'CALLS' AND c.depth < ?
            )
            SELECT n.id AS id,
                   json_extract(n.properties, '$.name') AS name,
                   json_extract(n.properties, '$.full_name') AS full_name,
                   MIN(c.depth) AS depth
            FROM callers c
            JOIN nodes n ON n.id = c.id
            WHERE c.depth > 0 AND n.id != ?
            GROUP BY n.id
            ORDER BY depth, name
        """, (method_node_id, max_depth, method_node_id))

        return [dict(row) for row in rows]

    # ==================== CLEANUP OPERATIONS ====================

    def delete_app(self, app_key: str) -> int:
        """
        Delete every node of an application; relationships cascade.

        Args:
            app_key: Key of the application to remove

        Returns:
            Number of nodes deleted
        """
        with self.transaction() as tx:
            result = tx.cursor.execute("DELETE FROM nodes WHERE app_key = ?", (app_key,))
            deleted_count = result.rowcount

        logger.info(f"Deleted {deleted_count} nodes for application {app_key}")
        return deleted_count

    def delete_insertion(self, app_node_id: int) -> int:
        """
        Delete one inserted application: its App node and everything it owns.

        Follows only the ownership relationships from the App node, so other
        insertions under the same application key are left alone.
        Relationships of the deleted nodes cascade.

        Args:
            app_node_id: Id of the App node of the insertion

        Returns:
            Number of nodes deleted
        """
        with self.transaction() as tx:
            result = tx.cursor.execute("""
                DELETE FROM nodes WHERE id IN (
                    WITH RECURSIVE owned(id) AS (
                        SELECT n.id FROM nodes n WHERE n.id = ? AND n.label = 'App'

                        UNION

                        SELECT r.target_id
                        FROM relationships r
                        JOIN owned o ON r.source_id = o.id
                        WHERE r.type IN ('APP_OWNS_CLASS', 'CLASS_OWNS_VARIABLE',
                                         'CLASS_OWNS_METHOD', 'METHOD_OWNS_ARGUMENT')
                    )
                    SELECT id FROM owned
                )
            """, (app_node_id,))
            deleted_count = result.rowcount

        logger.info(f"Deleted {deleted_count} nodes of insertion rooted at node {app_node_id}")
        return deleted_count

    # ==================== STATISTICS ====================

    def get_statistics(self) -> Dict[str, Any]:
        """Get graph statistics."""
        try:
            cursor = self.connection.cursor()

            stats = {}

            stats['nodes_total'] = cursor.execute("SELECT COUNT(*) FROM nodes").fetchone()[0]
            stats['relationships_total'] = cursor.execute("SELECT COUNT(*) FROM relationships").fetchone()[0]

            node_labels = cursor.execute("""
                SELECT label, COUNT(*) FROM nodes GROUP BY label ORDER BY COUNT(*) DESC
            """).fetchall()
            stats['node_labels'] = {row[0]: row[1] for row in node_labels}

            relationship_types = cursor.execute("""
                SELECT type, COUNT(*) FROM relationships GROUP BY type ORDER BY COUNT(*) DESC
            """).fetchall()
            stats['relationship_types'] = {row[0]: row[1] for row in relationship_types}

            applications = cursor.execute("""
                SELECT app_key, COUNT(*) FROM nodes GROUP BY app_key ORDER BY app_key
            """).fetchall()
            stats['applications'] = {row[0]: row[1] for row in applications}

            if self.db_path.exists():
                stats['database_size_mb'] = round(self.db_path.stat().st_size / (1024 * 1024), 2)
            else:
                stats['database_size_mb'] = 0

            return stats

        except sqlite3.Error as e:
            logger.error(f"Failed to get database statistics: {e}")
            return {}

    def close(self):
        """Close database connection."""
        if self.connection:
            self.connection.close()
            self.connection = None
            logger.debug("Database connection closed")


# ==================== CONVENIENCE FUNCTIONS ====================

def get_graph_database(db_path: str = "model_graph.db", timeout: float = 30.0) -> GraphDatabaseManager:
    """Get a GraphDatabaseManager instance with connection verification."""
    manager = GraphDatabaseManager(db_path, timeout=timeout)

    try:
        manager.connection.execute("SELECT 1")
        return manager
    except sqlite3.Error as e:
        logger.error(f"Database connection verification failed: {e}")
        manager.close()
        raise GraphStorageError(str(e)) from e


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Model Graph Database Manager")
    parser.add_argument("--db-path", default="model_graph.db", help="Database file path")
    parser.add_argument("--stats", action="store_true", help="Show graph statistics")
    parser.add_argument("--delete-app", metavar="APP_KEY", help="Delete all nodes of an application")
    parser.add_argument("--delete-insertion", metavar="APP_NODE_ID", type=int,
                        help="Delete one inserted application by its App node id")

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    try:
        manager = get_graph_database(args.db_path)

        if args.stats:
            print("\nGraph Statistics:")
            stats = manager.get_statistics()

            for category, data in stats.items():
                if isinstance(data, dict):
                    print(f"\n{category.replace('_', ' ').title()}:")
                    for key, value in data.items():
                        print(f"  {key}: {value}")
                else:
                    print(f"{category.replace('_', ' ').title()}: {data}")

        if args.delete_app:
            deleted = manager.delete_app(args.delete_app)
            print(f"Deleted {deleted} nodes")

        if args.delete_insertion is not None:
            deleted = manager.delete_insertion(args.delete_insertion)
            print(f"Deleted {deleted} nodes")

        manager.close()

    except Exception as e:
        print(f"Error: {e}")
        raise SystemExit(1)
