# plugins/core_persistence/contracts.py

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Generic, List, Mapping, Optional, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import Topology

T = TypeVar('T')


# --- 错误类型 ---

class TopologyDecodeError(ValueError):
    """一个已存在的拓扑文件无法被解码。"""
    def __init__(self, path: Path, reason: str):
        super().__init__(f"Topology file '{path}' could not be decoded: {reason}")
        self.path = path


class StoreLockTimeout(TimeoutError):
    """在给定时间内未能获取存储的写锁，未发生任何写入。"""


# --- 带标签的查找结果：Found / Absent / Failed ---

@dataclass(frozen=True)
class Found(Generic[T]):
    value: T

@dataclass(frozen=True)
class Absent:
    pass

@dataclass(frozen=True)
class Failed:
    error: Exception

LookupResult = Union[Found[T], Absent, Failed]


# --- 边界数据模型 ---

class CredentialStatus(BaseModel):
    """
    凭据状态。敏感变量只出现在 set_variables 中，其值永远不会出现在这里。
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    has_credentials: bool = False
    set_variables: List[str] = Field(default_factory=list)
    non_sensitive_values: Dict[str, str] = Field(default_factory=dict)


# --- 服务接口 ---

class TopologyStoreInterface(ABC):
    @abstractmethod
    async def list(self) -> List[Topology]: raise NotImplementedError
    @abstractmethod
    async def get(self, topology_id: UUID) -> Optional[Topology]: raise NotImplementedError
    @abstractmethod
    async def lookup(self, topology_id: UUID) -> LookupResult[Topology]: raise NotImplementedError
    @abstractmethod
    async def save(self, topology: Topology, timeout: Optional[float] = None) -> None: raise NotImplementedError
    @abstractmethod
    async def delete(self, topology_id: UUID, timeout: Optional[float] = None) -> None: raise NotImplementedError


class CredentialStoreInterface(ABC):
    @abstractmethod
    async def get_status(self, provider_key: str) -> CredentialStatus: raise NotImplementedError
    @abstractmethod
    async def save(self, provider_key: str, variables: Mapping[str, str], timeout: Optional[float] = None) -> None: raise NotImplementedError
