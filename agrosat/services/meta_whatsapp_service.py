import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends

from agrosat.core.config import settings
from agrosat.core.errors import CredentialsNotConfigured, VendorError
from agrosat.core.http import get_http_transport
from agrosat.models.api_credentials import MetaWhatsAppCredentials

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com/v18.0"


class MetaWhatsAppService:
    """WhatsApp Cloud API (Graph API) client."""

    def __init__(self, transport: httpx.AsyncBaseTransport = None):
        self.transport = transport
        self.timeout = settings.HTTP_TIMEOUT

    def _client(self, access_token: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=GRAPH_API_URL,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Authorization": f"Bearer {access_token}"},
        )

    async def send_message(self, creds: MetaWhatsAppCredentials, to_number: str, message: str) -> Optional[str]:
        """Sends a text message and returns the WhatsApp message id."""
        if not creds.configured:
            raise CredentialsNotConfigured("Meta WhatsApp")

        payload = {
            "messaging_product": "whatsapp",
            "to": "".join(ch for ch in to_number if ch.isdigit()),
            "type": "text",
            "text": {"body": message},
        }
        try:
            async with self._client(creds.access_token) as client:
                response = await client.post(f"/{creds.phone_number_id}/messages", json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Meta WhatsApp send to %s failed: %s", to_number, e.response.text)
            raise VendorError(f"Meta WhatsApp API error: {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error("Meta WhatsApp unreachable: %s", e)
            raise VendorError(f"Meta WhatsApp API error: {e}")

        messages = response.json().get("messages") or [{}]
        return messages[0].get("id")

    async def test_connection(self, access_token: str, app_id: str, phone_number_id: str) -> Dict[str, Any]:
        if not access_token or not app_id or not phone_number_id:
            return {"success": False, "message": "Access Token, App ID, and Phone Number ID are required"}

        try:
            async with self._client(access_token) as client:
                phone = await client.get(
                    f"/{phone_number_id}",
                    params={"fields": "id,display_phone_number,verified_name,status"},
                )
                if phone.status_code != 200:
                    return {
                        "success": False,
                        "message": f"WhatsApp API test failed: {phone.status_code} - Invalid credentials or phone number",
                    }
                app = await client.get(f"/{app_id}", params={"fields": "id,name"})
        except httpx.HTTPError as e:
            logger.error("WhatsApp connection test failed: %s", e)
            return {"success": False, "message": f"Test failed: {e}"}

        phone_data = phone.json()
        message = f"Successfully connected to WhatsApp Business API. Phone: {phone_data.get('display_phone_number') or phone_data.get('id')}"
        if app.status_code == 200:
            message += f", App: {app.json().get('name')}"
        return {"success": True, "message": message}


def get_meta_whatsapp_service(transport=Depends(get_http_transport)):
    return MetaWhatsAppService(transport=transport)
