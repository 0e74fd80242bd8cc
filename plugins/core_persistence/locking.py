# plugins/core_persistence/locking.py

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .contracts import StoreLockTimeout

logger = logging.getLogger(__name__)


@asynccontextmanager
async def exclusive(lock: asyncio.Lock, timeout: Optional[float] = None, owner: str = "store") -> AsyncIterator[None]:
    """
    在写锁内执行一段代码，所有退出路径（正常、异常、取消）都会释放锁。

    - timeout 为 None 时一直等待，但等待本身可以被任务取消打断，此时锁不会被持有。
    - 设置了 timeout 且到期仍未拿到锁时抛出 StoreLockTimeout，不发生任何写入。
    """
    if timeout is None:
        await lock.acquire()
    else:
        try:
            await asyncio.wait_for(lock.acquire(), timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"Timed out after {timeout}s waiting for the {owner} write lock.")
            raise StoreLockTimeout(f"Could not acquire the {owner} write lock within {timeout}s") from e
    try:
        yield
    finally:
        lock.release()
