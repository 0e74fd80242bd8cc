# plugins/core_persistence/models.py

from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


EMPTY_ID = UUID(int=0)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """
    所有落盘模型的基类。
    - 外部字段名统一为 camelCase（Python 侧仍使用 snake_case）。
    - 允许未知字段，拓扑内容对存储层来说是不透明的，读写时必须原样保留。
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


# --- 枚举：按成员名称序列化 ---

class ContainerKind(str, Enum):
    HOST = "Host"
    NETWORK = "Network"
    CADDY = "Caddy"
    FEDERATION_GROUP = "FederationGroup"

class ImageKind(str, Enum):
    HUB_SERVER = "HubServer"
    FEDERATION_SERVER = "FederationServer"
    REDIS = "Redis"
    POSTGRESQL = "PostgreSQL"
    MINIO = "MinIO"
    LIVEKIT = "LiveKit"
    CUSTOM = "Custom"

class PortType(str, Enum):
    NETWORK = "Network"
    DATABASE = "Database"
    STORAGE = "Storage"
    CONTROL = "Control"
    GENERIC = "Generic"

class PortDirection(str, Enum):
    IN = "In"
    OUT = "Out"
    IN_OUT = "InOut"

class PortSide(str, Enum):
    TOP = "Top"
    RIGHT = "Right"
    BOTTOM = "Bottom"
    LEFT = "Left"


# --- 拓扑文档 ---

class Port(CamelModel):
    id: UUID = Field(default_factory=uuid4)
    name: str = ""
    type: PortType = PortType.NETWORK
    direction: PortDirection = PortDirection.IN
    side: PortSide = PortSide.TOP
    offset: float = 0.0

class Image(CamelModel):
    id: UUID = Field(default_factory=uuid4)
    name: str = ""
    kind: ImageKind = ImageKind.HUB_SERVER
    x: float = 0.0
    y: float = 0.0
    width: float = 120
    height: float = 60
    ports: List[Port] = Field(default_factory=list)
    docker_image: Optional[str] = None
    config: Dict[str, str] = Field(default_factory=dict)

class Container(CamelModel):
    id: UUID = Field(default_factory=uuid4)
    name: str = ""
    kind: ContainerKind = ContainerKind.HOST
    x: float = 0.0
    y: float = 0.0
    width: float = 300
    height: float = 200
    ports: List[Port] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)
    children: List[Container] = Field(default_factory=list)
    config: Dict[str, str] = Field(default_factory=dict)

class Wire(CamelModel):
    id: UUID = Field(default_factory=uuid4)
    # 未连接的端点用全零 UUID 表示
    from_node_id: UUID = EMPTY_ID
    from_port_id: UUID = EMPTY_ID
    to_node_id: UUID = EMPTY_ID
    to_port_id: UUID = EMPTY_ID

class Topology(CamelModel):
    """
    一个网络拓扑文档。
    存储层只关心 `id` 与 `updated_at`，其余内容整体读写。
    """
    id: UUID = Field(default_factory=uuid4)
    name: str = ""
    description: Optional[str] = None
    provider: str = "linode"
    provider_config: Dict[str, str] = Field(default_factory=dict)
    containers: List[Container] = Field(default_factory=list)
    wires: List[Wire] = Field(default_factory=list)
    schema_version: int = 1
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_json(self) -> str:
        """序列化为落盘格式：camelCase 字段名、枚举按名称、多行缩进。"""
        return self.model_dump_json(by_alias=True, indent=2)


Container.model_rebuild()
