import logging
from typing import Any, Dict

import httpx
from fastapi import Depends

from agrosat.core.config import settings
from agrosat.core.errors import CredentialsNotConfigured, VendorError
from agrosat.core.http import get_http_transport, normalize_phone
from agrosat.models.api_credentials import AfricasTalkingCredentials

logger = logging.getLogger(__name__)

SANDBOX_URL = "https://api.sandbox.africastalking.com"
PRODUCTION_URL = "https://api.africastalking.com"


def base_url(sandbox_mode: bool) -> str:
    return SANDBOX_URL if sandbox_mode else PRODUCTION_URL


class AfricasTalkingService:
    def __init__(self, transport: httpx.AsyncBaseTransport = None):
        self.transport = transport
        self.timeout = settings.HTTP_TIMEOUT

    def _client(self, api_key: str, sandbox_mode: bool) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url(sandbox_mode),
            timeout=self.timeout,
            transport=self.transport,
            headers={"apiKey": api_key, "Accept": "application/json"},
        )

    async def send_sms(self, creds: AfricasTalkingCredentials, to_number: str, message: str) -> Dict[str, Any]:
        """Returns the SMSMessageData block of the API response."""
        if not creds.configured:
            raise CredentialsNotConfigured("Africa's Talking")

        form = {"username": creds.username, "to": normalize_phone(to_number), "message": message}
        if creds.sender_id:
            form["from"] = creds.sender_id
        try:
            async with self._client(creds.api_key, creds.sandbox_mode) as client:
                response = await client.post("/version1/messaging", data=form)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Africa's Talking SMS to %s failed: %s", to_number, e.response.text)
            raise VendorError(f"Africa's Talking API error: {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error("Africa's Talking unreachable: %s", e)
            raise VendorError(f"Africa's Talking API error: {e}")
        return response.json().get("SMSMessageData", {})

    async def test_connection(self, username: str, api_key: str, sender_id: str = "", sandbox_mode: bool = False) -> Dict[str, Any]:
        if not username or not api_key:
            return {"success": False, "message": "Username and API Key are required"}

        logger.info("Testing Africa's Talking in %s mode", "sandbox" if sandbox_mode else "production")
        try:
            async with self._client(api_key, sandbox_mode) as client:
                response = await client.get("/version1/user", params={"username": username})
        except httpx.HTTPError as e:
            logger.error("Africa's Talking test failed: %s", e)
            return {"success": False, "message": f"Test failed: {e}"}

        if response.status_code != 200:
            return {
                "success": False,
                "message": f"Africa's Talking API test failed: {response.status_code} - Invalid credentials or API endpoint unreachable",
            }
        user = response.json().get("UserData")
        if not user:
            return {"success": False, "message": "Invalid response from Africa's Talking API - UserData not found"}

        message = f"Successfully connected to Africa's Talking API ({'Sandbox' if sandbox_mode else 'Production'}) | Username: {username}"
        if user.get("balance"):
            message += f" | Balance: {user['balance']}"
        if sender_id:
            message += f" | Sender ID: {sender_id}"
        return {"success": True, "message": message}


def get_africastalking_service(transport=Depends(get_http_transport)):
    return AfricasTalkingService(transport=transport)
