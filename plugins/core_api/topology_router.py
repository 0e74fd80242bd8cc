# plugins/core_api/topology_router.py

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from topostore.core.dependencies import Service
from plugins.core_persistence.config import DataOptions
from plugins.core_persistence.contracts import (
    Absent,
    Found,
    StoreLockTimeout,
    TopologyStoreInterface,
)
from plugins.core_persistence.models import Topology, utc_now

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100

topology_router = APIRouter(
    prefix="/api/v1/topologies",
    tags=["Topologies"]
)


# --- Request/Response Models ---

class _CamelBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class CreateTopologyRequest(_CamelBody):
    name: str = ""
    description: Optional[str] = None
    provider: str = "linode"

class TopologySummary(_CamelBody):
    id: UUID
    name: str
    description: Optional[str] = None
    provider: str
    container_count: int
    wire_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_topology(cls, topology: Topology) -> "TopologySummary":
        return cls(
            id=topology.id,
            name=topology.name,
            description=topology.description,
            provider=topology.provider,
            container_count=len(topology.containers),
            wire_count=len(topology.wires),
            created_at=topology.created_at,
            updated_at=topology.updated_at,
        )

class ListTopologiesResponse(_CamelBody):
    topologies: List[TopologySummary] = Field(default_factory=list)

class DeleteTopologyResponse(_CamelBody):
    deleted: bool


# --- 辅助函数：把存储结果翻译为 HTTP 结果 ---

async def _load_or_404(store: TopologyStoreInterface, topology_id: UUID) -> Topology:
    result = await store.lookup(topology_id)
    if isinstance(result, Found):
        return result.value
    if isinstance(result, Absent):
        raise HTTPException(status_code=404, detail=f"Topology {topology_id} not found")
    logger.error(f"Failed to load topology {topology_id}: {result.error}", exc_info=result.error)
    raise HTTPException(status_code=500, detail="An error occurred while reading the topology.")


async def _save(store: TopologyStoreInterface, topology: Topology, options: DataOptions) -> None:
    try:
        await store.save(topology, timeout=options.write_timeout)
    except StoreLockTimeout as e:
        raise HTTPException(status_code=503, detail=str(e))
    except OSError as e:
        logger.error(f"Failed to save topology {topology.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An error occurred while saving the topology.")


# --- API 端点 ---

@topology_router.get("", response_model=ListTopologiesResponse)
async def list_topologies(
    store: TopologyStoreInterface = Depends(Service("topology_store"))
):
    """列出所有拓扑的摘要，最近更新的在前。"""
    try:
        topologies = await store.list()
    except OSError as e:
        logger.error(f"Failed to list topologies: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An error occurred while listing topologies.")
    return ListTopologiesResponse(topologies=[TopologySummary.from_topology(t) for t in topologies])


@topology_router.post("", response_model=Topology, status_code=status.HTTP_201_CREATED)
async def create_topology(
    request_body: CreateTopologyRequest,
    store: TopologyStoreInterface = Depends(Service("topology_store")),
    options: DataOptions = Depends(Service("data_options")),
):
    if not request_body.name.strip():
        raise HTTPException(status_code=400, detail="Topology name is required")
    if len(request_body.name) > MAX_NAME_LENGTH:
        raise HTTPException(status_code=400, detail=f"Topology name must not exceed {MAX_NAME_LENGTH} characters")

    topology = Topology(
        name=request_body.name,
        description=request_body.description,
        provider=request_body.provider,
    )
    await _save(store, topology, options)
    return topology


@topology_router.get("/{topology_id}", response_model=Topology)
async def get_topology(
    topology_id: UUID,
    store: TopologyStoreInterface = Depends(Service("topology_store"))
):
    return await _load_or_404(store, topology_id)


@topology_router.put("/{topology_id}", response_model=Topology)
async def update_topology(
    topology_id: UUID,
    topology: Topology,
    store: TopologyStoreInterface = Depends(Service("topology_store")),
    options: DataOptions = Depends(Service("data_options")),
):
    """整体覆盖一个已存在的拓扑。路径中的 id 优先，created_at 沿用已存储的值。"""
    existing = await _load_or_404(store, topology_id)
    topology.id = topology_id
    topology.created_at = existing.created_at
    await _save(store, topology, options)
    return topology


@topology_router.delete("/{topology_id}", response_model=DeleteTopologyResponse)
async def delete_topology(
    topology_id: UUID,
    store: TopologyStoreInterface = Depends(Service("topology_store")),
    options: DataOptions = Depends(Service("data_options")),
):
    await _load_or_404(store, topology_id)
    try:
        await store.delete(topology_id, timeout=options.write_timeout)
    except StoreLockTimeout as e:
        raise HTTPException(status_code=503, detail=str(e))
    return DeleteTopologyResponse(deleted=True)


@topology_router.post("/{topology_id}/duplicate", response_model=Topology, status_code=status.HTTP_201_CREATED)
async def duplicate_topology(
    topology_id: UUID,
    store: TopologyStoreInterface = Depends(Service("topology_store")),
    options: DataOptions = Depends(Service("data_options")),
):
    existing = await _load_or_404(store, topology_id)

    now = utc_now()
    clone = existing.model_copy(deep=True, update={
        "id": uuid4(),
        "name": f"{existing.name} (Copy)",
        "created_at": now,
        "updated_at": now,
    })
    await _save(store, clone, options)
    return clone
