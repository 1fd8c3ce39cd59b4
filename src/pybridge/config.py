"""Storage configuration for pybridge."""

from __future__ import annotations

import dataclasses
import os
import re
from typing import Any

from pybridge.exceptions import BridgeConfigError

MEMORY_PATH = ":memory:"

_BACKENDS = frozenset({"sqlite", "memory"})
_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclasses.dataclass(frozen=True)
class BridgeConfig:
    """Configuration for the linked room store.

    Parameters
    ----------
    db_path : str
        Database file path for the ``sqlite`` backend.  ``":memory:"``
        keeps the database in memory for the lifetime of the connection.
        Ignored by the ``memory`` backend.
    backend : str
        Storage engine, ``"sqlite"`` (file or in-memory SQLite via
        aiosqlite) or ``"memory"`` (plain in-process dict).
    table_name : str
        Table holding the entry documents (``sqlite`` only).
    busy_timeout : float
        Seconds SQLite waits on a locked database before failing.
    """

    db_path: str = MEMORY_PATH
    backend: str = "sqlite"
    table_name: str = "room_entries"
    busy_timeout: float = 5.0

    def __post_init__(self) -> None:
        if self.backend not in _BACKENDS:
            raise BridgeConfigError(f"Unknown storage backend {self.backend!r}; expected one of {sorted(_BACKENDS)}")
        if not _TABLE_NAME_RE.match(self.table_name):
            raise BridgeConfigError(f"Invalid table name {self.table_name!r}")
        if self.busy_timeout < 0:
            raise BridgeConfigError("busy_timeout must be >= 0")

    @property
    def is_in_memory(self) -> bool:
        return self.backend == "memory" or self.db_path == MEMORY_PATH

    @classmethod
    def from_env(cls, **overrides: Any) -> BridgeConfig:
        """Create configuration from environment variables.

        Reads ``BRIDGE_DB_PATH``, ``BRIDGE_STORAGE_BACKEND``,
        ``BRIDGE_TABLE_NAME`` and ``BRIDGE_BUSY_TIMEOUT``.  Explicit
        keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "BRIDGE_DB_PATH": "db_path",
            "BRIDGE_STORAGE_BACKEND": "backend",
            "BRIDGE_TABLE_NAME": "table_name",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val.strip()

        # busy_timeout is numeric, handle separately
        timeout_env = env.get("BRIDGE_BUSY_TIMEOUT")
        if timeout_env is not None and "busy_timeout" not in overrides:
            try:
                config_kwargs["busy_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise BridgeConfigError(f"BRIDGE_BUSY_TIMEOUT is not a number: {timeout_env!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
