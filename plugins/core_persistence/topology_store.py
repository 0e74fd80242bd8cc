# plugins/core_persistence/topology_store.py

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional
from uuid import UUID

from pydantic import ValidationError

from .config import DataOptions
from .contracts import (
    Absent,
    Failed,
    Found,
    LookupResult,
    TopologyDecodeError,
    TopologyStoreInterface,
)
from .files import read_text, remove_if_exists, write_text_atomic
from .locking import exclusive
from .models import Topology

logger = logging.getLogger(__name__)


class FileTopologyStore(TopologyStoreInterface):
    """
    每个拓扑一个 `<id>.json` 文件，没有内存缓存，每次读取都直接读盘。
    所有写操作（save / delete）共用一把写锁，不区分文档。
    """
    def __init__(self, options: DataOptions):
        self._topologies_path = options.topologies_dir
        self._topologies_path.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()
        self._last_stamp: Optional[datetime] = None
        logger.info(f"FileTopologyStore initialized. Topologies directory: {self._topologies_path.resolve()}")

    @property
    def topologies_dir(self) -> Path:
        return self._topologies_path

    def _get_file_path(self, topology_id: UUID) -> Path:
        return self._topologies_path / f"{topology_id}.json"

    @staticmethod
    async def _read_document(path: Path) -> Optional[Topology]:
        try:
            content = await read_text(path)
        except UnicodeDecodeError as e:
            raise TopologyDecodeError(path, str(e)) from e
        if content is None:
            return None
        try:
            return Topology.model_validate_json(content)
        except (ValidationError, json.JSONDecodeError) as e:
            raise TopologyDecodeError(path, str(e)) from e

    @staticmethod
    def _sort_key(topology: Topology) -> datetime:
        stamp = topology.updated_at
        # 手工编辑的文件可能缺少时区，按 UTC 处理，避免与带时区的时间比较时报错
        return stamp if stamp.tzinfo is not None else stamp.replace(tzinfo=timezone.utc)

    def _next_stamp(self) -> datetime:
        # 同一实例发出的时间戳严格递增，即使系统时钟回拨或两次保存落在同一时钟刻度内。
        # 只计算候选值，写入成功后才由 save 提交到 _last_stamp
        now = datetime.now(timezone.utc)
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(microseconds=1)
        return now

    async def list(self) -> List[Topology]:
        """
        列出所有拓扑，按 updated_at 降序。
        无法解码的文件会被记录并跳过，不影响其余文档。
        """
        def _sync_list_files() -> List[Path]:
            if not self._topologies_path.is_dir():
                return []
            return sorted(self._topologies_path.glob("*.json"))

        topologies: List[Topology] = []
        for file_path in await asyncio.to_thread(_sync_list_files):
            try:
                topology = await self._read_document(file_path)
            except (TopologyDecodeError, OSError) as e:
                logger.warning(f"Skipping unreadable topology file {file_path}: {e}", exc_info=True)
                continue
            # None 表示文件在列目录和读取之间被删除
            if topology is not None:
                topologies.append(topology)

        # sorted 是稳定的，updated_at 相同时保持目录枚举顺序
        return sorted(topologies, key=self._sort_key, reverse=True)

    async def get(self, topology_id: UUID) -> Optional[Topology]:
        """文件不存在时返回 None；文件存在但无法解码时抛出 TopologyDecodeError。"""
        return await self._read_document(self._get_file_path(topology_id))

    async def lookup(self, topology_id: UUID) -> LookupResult[Topology]:
        """与 get 相同，但把结果表达为 Found / Absent / Failed 三种之一。取消不会被包装。"""
        try:
            topology = await self.get(topology_id)
        except Exception as e:
            return Failed(e)
        if topology is None:
            return Absent()
        return Found(topology)

    async def save(self, topology: Topology, timeout: Optional[float] = None) -> None:
        """
        设置 updated_at 并整体覆盖写入。
        新的 updated_at 只在写入成功后才回填到调用方的对象上。
        """
        async with exclusive(self._lock, timeout, owner="topology store"):
            stamp = self._next_stamp()
            file_path = self._get_file_path(topology.id)
            stamped = topology.model_copy(update={"updated_at": stamp})
            await write_text_atomic(file_path, stamped.to_json())
            self._last_stamp = stamp
            topology.updated_at = stamp
            logger.debug(f"Saved topology {topology.id} to {file_path}")

    async def delete(self, topology_id: UUID, timeout: Optional[float] = None) -> None:
        """删除一个不存在的拓扑不是错误。"""
        async with exclusive(self._lock, timeout, owner="topology store"):
            if await remove_if_exists(self._get_file_path(topology_id)):
                logger.debug(f"Deleted topology {topology_id}")
