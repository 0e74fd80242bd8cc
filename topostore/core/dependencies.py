# topostore/core/dependencies.py

from typing import Any, Callable
from fastapi import Request


def Service(name: str) -> Callable[[Request], Any]:
    """
    FastAPI 依赖工厂：从 app.state.container 中按名称解析服务。

    用法：
        store: TopologyStoreInterface = Depends(Service("topology_store"))
    """
    def _resolve(request: Request) -> Any:
        return request.app.state.container.resolve(name)
    _resolve.__name__ = f"resolve_{name}"
    return _resolve
