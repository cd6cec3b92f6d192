"""
Adapters package - External service connections.
MongoDB connection handling and the Fitbit HTTP transport.
"""

from adapters import fitbit_client, mongo_adapter

__all__ = [
    "fitbit_client",
    "mongo_adapter",
]
