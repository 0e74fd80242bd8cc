# plugins/core_persistence/files.py

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"


def temp_path_for(path: Path) -> Path:
    """同目录下的临时文件：<name>.<随机串>.tmp，永远不会匹配 *.json。"""
    return path.with_name(f"{path.name}.{uuid.uuid4().hex}{TEMP_SUFFIX}")


async def read_text(path: Path) -> Optional[str]:
    """读取整个文本文件；文件不存在时返回 None。其他 I/O 错误照常抛出。"""
    try:
        async with aiofiles.open(path, mode='r', encoding='utf-8') as f:
            return await f.read()
    except FileNotFoundError:
        return None


async def write_text_atomic(path: Path, text: str) -> None:
    """
    先完整写入同目录的临时文件，再用 os.replace 原子地替换目标文件。
    任何异常（包括任务取消）都会删除临时文件并重新抛出，目标文件保持原样。
    """
    tmp_path = temp_path_for(path)
    try:
        async with aiofiles.open(tmp_path, mode='w', encoding='utf-8', newline='') as f:
            await f.write(text)
        await aiofiles.os.replace(tmp_path, path)
    except BaseException:
        await asyncio.shield(_discard(tmp_path))
        raise


async def remove_if_exists(path: Path) -> bool:
    """删除文件；文件本来就不存在时返回 False 而不是报错。"""
    try:
        await aiofiles.os.remove(path)
        return True
    except FileNotFoundError:
        return False


async def _discard(tmp_path: Path) -> None:
    try:
        await aiofiles.os.remove(tmp_path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary file {tmp_path}: {e}")
