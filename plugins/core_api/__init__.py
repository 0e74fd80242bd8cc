# plugins/core_api/__init__.py
import logging
from typing import List
from fastapi import APIRouter

from topostore.core.contracts import Container, HookManager


logger = logging.getLogger(__name__)


async def provide_own_routers(routers: List[APIRouter]) -> List[APIRouter]:
    """
    Hook implementation: adds this plugin's routers to the application's collection.
    Routers are imported inside the function so their modules only execute
    once the application is ready to collect them.
    """
    from .topology_router import topology_router
    from .credentials_router import credentials_router

    routers.append(topology_router)
    routers.append(credentials_router)
    logger.debug(f"[core_api] Provided routers: {topology_router.prefix}, {credentials_router.prefix}")
    return routers


def register_plugin(container: Container, hook_manager: HookManager):
    """
    Registers the core_api plugin. It only translates store results into HTTP
    outcomes; all persistence lives in core_persistence.
    """
    logger.info("--> 正在注册 [core_api] 插件...")

    hook_manager.add_implementation(
        "collect_api_routers",
        provide_own_routers,
        priority=100,
        plugin_name="core_api"
    )
    logger.info("插件 [core_api] 注册成功。")
