# plugins/core_persistence/config.py

import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field

DATA_DIR_ENV_VAR = "TOPOSTORE_DATA_DIR"
WRITE_TIMEOUT_ENV_VAR = "TOPOSTORE_WRITE_TIMEOUT"
DEFAULT_DATA_DIR = "data"
DEFAULT_WRITE_TIMEOUT = 30.0


class DataOptions(BaseModel):
    """
    数据目录布局：<base_path>/credentials 与 <base_path>/topologies。
    write_timeout 是 API 层等待存储写锁的上限（秒），None 表示一直等待。
    """
    base_path: Path = Field(default=Path(DEFAULT_DATA_DIR))
    write_timeout: Optional[float] = Field(default=DEFAULT_WRITE_TIMEOUT, gt=0)

    @property
    def credentials_dir(self) -> Path:
        return self.base_path / "credentials"

    @property
    def topologies_dir(self) -> Path:
        return self.base_path / "topologies"

    @classmethod
    def from_env(cls) -> "DataOptions":
        raw_timeout = os.getenv(WRITE_TIMEOUT_ENV_VAR)
        if raw_timeout is None:
            write_timeout = DEFAULT_WRITE_TIMEOUT
        elif raw_timeout.strip().lower() in ("", "none", "0"):
            write_timeout = None
        else:
            write_timeout = float(raw_timeout)
        return cls(
            base_path=Path(os.getenv(DATA_DIR_ENV_VAR, DEFAULT_DATA_DIR)),
            write_timeout=write_timeout,
        )
