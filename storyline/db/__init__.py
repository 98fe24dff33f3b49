"""Database access for storyline."""

from .connection import close_connection_pool, get_connection, get_connection_pool
from .init import init_database, validate_connection
from .memory import MemoryDatastore, trigram_similarity
from .postgres import PostgresDatastore
from .store import CLUSTER_RECENCY_COLUMNS, Datastore

__all__ = [
    "CLUSTER_RECENCY_COLUMNS",
    "Datastore",
    "MemoryDatastore",
    "PostgresDatastore",
    "close_connection_pool",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "trigram_similarity",
    "validate_connection",
]
