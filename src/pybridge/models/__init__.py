"""Pydantic models for bridge entities and persisted entries."""

from pybridge.models.entity import BridgeEntity, LocalRoom, RemoteRoom
from pybridge.models.entry import RoomEntry

__all__ = [
    "BridgeEntity",
    "LocalRoom",
    "RemoteRoom",
    "RoomEntry",
]
