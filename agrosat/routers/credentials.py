import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pymongo.errors import PyMongoError

from agrosat.services.credentials_service import CredentialsService, get_credentials_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/credentials", tags=["Credentials"])


@router.get("")
async def get_credentials(credentials_service: CredentialsService = Depends(get_credentials_service)):
    try:
        credentials = await credentials_service.get_raw()
    except PyMongoError as e:
        logger.error("Failed to load API credentials: %s", e)
        return {"success": False, "credentials": {}, "message": "Failed to load credentials"}
    return {"success": True, "credentials": credentials}


@router.post("")
async def save_credentials(
    body: Optional[Dict[str, Any]] = Body(None),
    credentials_service: CredentialsService = Depends(get_credentials_service),
):
    credentials = (body or {}).get("credentials")
    if credentials is None or not isinstance(credentials, dict):
        return {"success": False, "message": "Credentials are required"}
    await credentials_service.save(credentials)
    return {"success": True, "message": "Credentials saved successfully"}
