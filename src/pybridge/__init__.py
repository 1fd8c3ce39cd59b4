"""pybridge - Async building blocks for bridging two identifier spaces."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pybridge")
except PackageNotFoundError:
    __version__ = "0+local"
from pybridge.config import BridgeConfig
from pybridge.dispatcher import RequestDispatcher, TimeoutSpec
from pybridge.exceptions import (
    BridgeConfigError,
    BridgeError,
    BridgeStorageError,
    BridgeValidationError,
    RequestAlreadySettledError,
)
from pybridge.models import BridgeEntity, LocalRoom, RemoteRoom, RoomEntry
from pybridge.request import Request, RequestOptions, RequestState
from pybridge.store import RoomBridgeStore

__all__ = [
    "__version__",
    "BridgeConfig",
    "BridgeConfigError",
    "BridgeEntity",
    "BridgeError",
    "BridgeStorageError",
    "BridgeValidationError",
    "LocalRoom",
    "RemoteRoom",
    "Request",
    "RequestAlreadySettledError",
    "RequestDispatcher",
    "RequestOptions",
    "RequestState",
    "RoomBridgeStore",
    "RoomEntry",
    "TimeoutSpec",
]
