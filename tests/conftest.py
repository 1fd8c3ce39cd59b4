from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio

from pybridge.config import BridgeConfig
from pybridge.store import RoomBridgeStore


@pytest.fixture(params=["memory", "sqlite-memory", "sqlite-file"])
def store_config(request: pytest.FixtureRequest, tmp_path: Path) -> BridgeConfig:
    if request.param == "memory":
        return BridgeConfig(backend="memory")
    if request.param == "sqlite-memory":
        return BridgeConfig(backend="sqlite")
    return BridgeConfig(backend="sqlite", db_path=str(tmp_path / "bridge.db"))


@pytest_asyncio.fixture
async def store(store_config: BridgeConfig) -> AsyncIterator[RoomBridgeStore]:
    opened = await RoomBridgeStore.open(store_config)
    try:
        yield opened
    finally:
        await opened.close()
