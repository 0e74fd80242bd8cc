# plugins/core_persistence/credential_store.py

import asyncio
import logging
from pathlib import Path
from typing import Mapping, Optional

from . import tfvars
from .config import DataOptions
from .contracts import CredentialStatus, CredentialStoreInterface
from .files import read_text, write_text_atomic
from .locking import exclusive

logger = logging.getLogger(__name__)

SENSITIVE_MARKERS = ("token", "secret", "password", "key")


def is_sensitive(name: str) -> bool:
    """变量名（大小写不敏感）包含任一敏感标记时视为敏感。"""
    folded = name.lower()
    return any(marker in folded for marker in SENSITIVE_MARKERS)


class FileCredentialStore(CredentialStoreInterface):
    """
    每个 provider 一个 `<provider_key>.tfvars` 文件。

    - get_status 不加锁，直接读盘。
    - save 是“读-合并-写”，整个周期都在同一把写锁内完成，
      所以同一 provider 的并发 save 不会丢失更新。
    """
    def __init__(self, options: DataOptions):
        self._credentials_path = options.credentials_dir
        self._credentials_path.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()
        logger.info(f"FileCredentialStore initialized. Credentials directory: {self._credentials_path.resolve()}")

    @property
    def credentials_dir(self) -> Path:
        return self._credentials_path

    def _get_file_path(self, provider_key: str) -> Path:
        return self._credentials_path / f"{provider_key}.tfvars"

    async def _load(self, provider_key: str) -> tfvars.CaseInsensitiveDict:
        content = await read_text(self._get_file_path(provider_key))
        if content is None:
            return tfvars.CaseInsensitiveDict()
        return tfvars.loads(content)

    async def get_status(self, provider_key: str) -> CredentialStatus:
        variables = await self._load(provider_key)
        return CredentialStatus(
            has_credentials=len(variables) > 0,
            set_variables=list(variables.keys()),
            non_sensitive_values={
                name: value for name, value in variables.items() if not is_sensitive(name)
            },
        )

    async def save(self, provider_key: str, variables: Mapping[str, str], timeout: Optional[float] = None) -> None:
        """
        合并写入：空字符串值删除该变量，非空值插入或覆盖，未提及的变量保持不变。
        合并结果整体重新编码并覆盖原文件。
        """
        async with exclusive(self._lock, timeout, owner="credential store"):
            file_path = self._get_file_path(provider_key)
            existing = await self._load(provider_key)

            for name, value in variables.items():
                if not value:
                    existing.pop(name, None)
                else:
                    existing[name] = value

            await write_text_atomic(file_path, tfvars.dumps(existing))
            logger.debug(f"Saved {len(existing)} credential variable(s) for provider '{provider_key}' to {file_path}")
