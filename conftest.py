# conftest.py

import pytest
import pytest_asyncio
from pathlib import Path
from typing import AsyncGenerator, Callable, List, Optional

from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager

from topostore.app import create_app
from plugins.core_persistence.config import DataOptions, DATA_DIR_ENV_VAR
from plugins.core_persistence.credential_store import FileCredentialStore
from plugins.core_persistence.topology_store import FileTopologyStore


# --- 1. 存储层 Fixtures (单元/集成测试) ---

@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """每个测试独立的数据目录。"""
    return tmp_path / "data"


@pytest.fixture
def data_options(data_dir: Path) -> DataOptions:
    return DataOptions(base_path=data_dir)


@pytest.fixture
def topology_store(data_options: DataOptions) -> FileTopologyStore:
    return FileTopologyStore(data_options)


@pytest.fixture
def credential_store(data_options: DataOptions) -> FileCredentialStore:
    return FileCredentialStore(data_options)


# --- 2. 端到端 API Fixtures ---

@pytest_asyncio.fixture
async def async_client(monkeypatch, data_dir: Path) -> AsyncGenerator[Callable, None]:
    """
    返回一个工厂：按需启动一个只加载指定插件的应用，并返回绑定到它的 AsyncClient。
    所有启动的应用都会在测试结束时正确关闭。
    """
    monkeypatch.setenv(DATA_DIR_ENV_VAR, str(data_dir))
    managers: List[LifespanManager] = []
    clients: List[AsyncClient] = []

    async def _factory(plugins: Optional[List[str]] = None) -> AsyncClient:
        app = create_app(enabled_plugins=plugins)
        manager = LifespanManager(app)
        await manager.__aenter__()
        managers.append(manager)
        ac = AsyncClient(transport=ASGITransport(app=manager.app), base_url="http://test")
        clients.append(ac)
        return ac

    yield _factory

    for ac in clients:
        await ac.aclose()
    for manager in reversed(managers):
        await manager.__aexit__(None, None, None)


@pytest_asyncio.fixture
async def client(async_client: Callable) -> AsyncClient:
    """加载全部插件的客户端，数据目录指向临时目录。"""
    return await async_client()
