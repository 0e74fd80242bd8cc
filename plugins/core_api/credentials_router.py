# plugins/core_api/credentials_router.py

import logging
import re
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from topostore.core.dependencies import Service
from plugins.core_persistence.config import DataOptions
from plugins.core_persistence.contracts import (
    CredentialStatus,
    CredentialStoreInterface,
    StoreLockTimeout,
)

logger = logging.getLogger(__name__)

# 存储层不校验 provider key，这里负责拒绝可能越出凭据目录的名称
PROVIDER_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
# 变量名会原样写入 tfvars 的键位置，不能包含换行、`=` 或以 `#` 开头
VARIABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

credentials_router = APIRouter(
    prefix="/api/v1/providers",
    tags=["Credentials"]
)


class SaveCredentialsBody(BaseModel):
    variables: Dict[str, str] = Field(default_factory=dict, description="变量名到值的映射；空字符串表示删除该变量。")

class SaveCredentialsResponse(BaseModel):
    status: str


def _check_provider_key(provider_key: str) -> None:
    if not PROVIDER_KEY_PATTERN.fullmatch(provider_key):
        raise HTTPException(status_code=400, detail=f"Invalid provider key '{provider_key}'")


@credentials_router.get("/{provider_key}/credentials", response_model=CredentialStatus)
async def get_credential_status(
    provider_key: str,
    store: CredentialStoreInterface = Depends(Service("credential_store"))
):
    """返回已设置的变量名，以及非敏感变量的值。敏感变量的值永远不会返回。"""
    _check_provider_key(provider_key)
    try:
        return await store.get_status(provider_key)
    except OSError as e:
        logger.error(f"Failed to read credentials for provider '{provider_key}': {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An error occurred while reading credentials.")


@credentials_router.post("/{provider_key}/credentials", response_model=SaveCredentialsResponse)
async def save_credentials(
    provider_key: str,
    body: SaveCredentialsBody,
    store: CredentialStoreInterface = Depends(Service("credential_store")),
    options: DataOptions = Depends(Service("data_options")),
):
    _check_provider_key(provider_key)
    if not body.variables:
        raise HTTPException(status_code=400, detail="At least one variable is required")
    invalid = sorted(name for name in body.variables if not VARIABLE_NAME_PATTERN.fullmatch(name))
    if invalid:
        raise HTTPException(status_code=400, detail=f"Invalid variable name(s): {invalid}")

    try:
        await store.save(provider_key, body.variables, timeout=options.write_timeout)
    except StoreLockTimeout as e:
        raise HTTPException(status_code=503, detail=str(e))
    except OSError as e:
        logger.error(f"Failed to save credentials for provider '{provider_key}': {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An error occurred while saving credentials.")

    # 只记录变量名，永远不记录值
    logger.info(f"Saved credentials for provider '{provider_key}': {sorted(body.variables.keys())}")
    return SaveCredentialsResponse(status="saved")
