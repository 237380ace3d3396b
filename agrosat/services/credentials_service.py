import logging
from typing import Any, Dict, Optional

from agrosat.core.config import settings
from agrosat.models.api_credentials import ApiCredentials, VendorCredentials

logger = logging.getLogger(__name__)


class CredentialsService:
    """Single-row store for the vendor credential blob edited on the settings page."""

    def __init__(self, key: str):
        self.key = key

    async def _find(self) -> Optional[ApiCredentials]:
        return await ApiCredentials.find_one(ApiCredentials.key == self.key)

    async def get_raw(self) -> Dict[str, Any]:
        row = await self._find()
        return row.credentials if row else {}

    async def get(self) -> VendorCredentials:
        return VendorCredentials.model_validate(await self.get_raw())

    async def save(self, credentials: Dict[str, Any]) -> ApiCredentials:
        row = await self._find()
        if row:
            row.credentials = credentials
            row.touch()
            await row.save()
            logger.info("Updated API credentials '%s'", self.key)
        else:
            row = ApiCredentials(key=self.key, credentials=credentials)
            await row.insert()
            logger.info("Created API credentials '%s'", self.key)
        return row


def get_credentials_service():
    return CredentialsService(key=settings.CREDENTIALS_KEY)
