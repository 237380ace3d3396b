import asyncio
import logging
from typing import Any, Dict, Optional

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client

from agrosat.core.errors import CredentialsNotConfigured, VendorError
from agrosat.core.http import normalize_phone
from agrosat.models.api_credentials import TwilioCredentials

logger = logging.getLogger(__name__)

SANDBOX_WHATSAPP_NUMBER = "whatsapp:+14155238886"


def whatsapp_address(phone_number: str) -> str:
    return f"whatsapp:{normalize_phone(phone_number)}"


class TwilioService:
    """Thin async wrapper over the synchronous Twilio SDK."""

    def client(self, creds: TwilioCredentials) -> Client:
        return Client(creds.account_sid, creds.auth_token)

    async def send_whatsapp_message(self, creds: TwilioCredentials, to_number: str, message: str) -> str:
        if not creds.configured:
            raise CredentialsNotConfigured("Twilio WhatsApp")

        from_number = creds.phone_number or SANDBOX_WHATSAPP_NUMBER
        if not from_number.startswith("whatsapp:"):
            from_number = whatsapp_address(from_number)
        try:
            sent = await asyncio.to_thread(
                self.client(creds).messages.create,
                from_=from_number,
                to=whatsapp_address(to_number),
                body=message,
            )
        except TwilioRestException as e:
            logger.error("Twilio WhatsApp send to %s failed: %s", to_number, e)
            raise VendorError(f"Twilio API error: {e.status} - {e.msg}")
        return sent.sid

    async def place_call(self, creds: TwilioCredentials, to_number: str, webhook_url: str) -> str:
        if not creds.configured or not creds.phone_number:
            raise CredentialsNotConfigured("Twilio voice")
        try:
            call = await asyncio.to_thread(
                self.client(creds).calls.create,
                to=normalize_phone(to_number),
                from_=creds.phone_number.replace("whatsapp:", ""),
                url=webhook_url,
            )
        except TwilioRestException as e:
            logger.error("Twilio call to %s failed: %s", to_number, e)
            raise VendorError(f"Twilio API error: {e.status} - {e.msg}")
        return call.sid

    async def test_connection(self, account_sid: str, auth_token: str, phone_number: Optional[str] = None) -> Dict[str, Any]:
        if not account_sid or not auth_token:
            return {"success": False, "message": "Account SID and Auth Token are required"}

        client = Client(account_sid, auth_token)
        try:
            account = await asyncio.to_thread(client.api.accounts(account_sid).fetch)
        except TwilioRestException as e:
            return {"success": False, "message": f"Twilio API test failed: {e.status} - Invalid credentials"}
        except TwilioException as e:
            logger.error("Twilio test failed: %s", e)
            return {"success": False, "message": f"Test failed: {e}"}

        if phone_number:
            try:
                numbers = await asyncio.to_thread(client.incoming_phone_numbers.list)
            except TwilioException as e:
                logger.warning("Could not list Twilio numbers: %s", e)
                numbers = None
            if numbers is not None and not any(n.phone_number == phone_number for n in numbers):
                return {"success": False, "message": f"Phone number {phone_number} not found in your Twilio account"}

        return {
            "success": True,
            "message": f"Successfully connected to Twilio account: {account.friendly_name or account_sid}",
        }


def get_twilio_service():
    return TwilioService()
