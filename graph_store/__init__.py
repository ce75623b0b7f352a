"""
Storage module for the model graph.

Provides an SQLite-backed property graph: labelled nodes carrying named
properties and typed, directed relationships, written in transactional units.
"""
