"""Adapters implementing the port interfaces."""

from offline_sync.adapters.file_store import JsonFileKeyValueStore
from offline_sync.adapters.http_gateway import HttpReachabilityProbe, HttpRemoteGateway
from offline_sync.adapters.memory_gateway import InMemoryRemoteGateway
from offline_sync.adapters.memory_store import InMemoryKeyValueStore

__all__ = [
    "HttpReachabilityProbe",
    "HttpRemoteGateway",
    "InMemoryKeyValueStore",
    "InMemoryRemoteGateway",
    "JsonFileKeyValueStore",
]
