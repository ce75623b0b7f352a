"""
Errors raised by the graph store.
"""


class GraphStorageError(Exception):
    """
    The storage engine rejected a read or write.

    Wraps the underlying `sqlite3.Error`, which stays available as `__cause__`.
    Raised from inside `GraphDatabaseManager.transaction()` after the
    transaction has been rolled back.
    """
