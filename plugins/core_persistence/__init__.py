# plugins/core_persistence/__init__.py
import logging

from topostore.core.contracts import Container, HookManager
from .config import DataOptions
from .contracts import (
    CredentialStatus,
    CredentialStoreInterface,
    TopologyStoreInterface,
    TopologyDecodeError,
    StoreLockTimeout,
    Found,
    Absent,
    Failed,
)
from .credential_store import FileCredentialStore, is_sensitive
from .topology_store import FileTopologyStore

logger = logging.getLogger(__name__)

__all__ = [
    "DataOptions",
    "CredentialStatus",
    "CredentialStoreInterface",
    "TopologyStoreInterface",
    "TopologyDecodeError",
    "StoreLockTimeout",
    "Found",
    "Absent",
    "Failed",
    "FileCredentialStore",
    "FileTopologyStore",
    "is_sensitive",
    "register_plugin",
]


def _create_data_options() -> DataOptions:
    return DataOptions.from_env()

def _create_topology_store(container: Container) -> FileTopologyStore:
    return FileTopologyStore(container.resolve("data_options"))

def _create_credential_store(container: Container) -> FileCredentialStore:
    return FileCredentialStore(container.resolve("data_options"))


async def initialize_stores(container: Container):
    """钩子实现: 在所有服务注册后实例化存储，目录在构造时创建，而不是在第一次调用时。"""
    options: DataOptions = container.resolve("data_options")
    container.resolve("topology_store")
    container.resolve("credential_store")
    logger.info(f"Persistent stores ready under data directory: {options.base_path.resolve()}")


def register_plugin(container: Container, hook_manager: HookManager):
    logger.info("--> 正在注册 [core_persistence] 插件...")
    container.register("data_options", _create_data_options, singleton=True)
    container.register("topology_store", _create_topology_store, singleton=True)
    container.register("credential_store", _create_credential_store, singleton=True)
    logger.debug("Registered 'data_options', 'topology_store' and 'credential_store'.")

    hook_manager.add_implementation(
        "services_post_register",
        initialize_stores,
        priority=90,
        plugin_name="core_persistence",
    )
    logger.info("插件 [core_persistence] 注册成功。")
