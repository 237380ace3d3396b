import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from agrosat.core.errors import InvalidRequest, VendorError
from agrosat.core.http import normalize_phone, read_payload
from agrosat.models.call_record import CallStatus, CallType
from agrosat.models.requests import SendMessageRequest
from agrosat.services.call_log_service import CallLogService, get_call_log_service
from agrosat.services.credentials_service import CredentialsService, get_credentials_service
from agrosat.services.farmer_service import FarmerService, get_farmer_service
from agrosat.services.meta_whatsapp_service import MetaWhatsAppService, get_meta_whatsapp_service
from agrosat.services.whatsapp_handler import WhatsAppHandler, get_whatsapp_handler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/whatsapp", tags=["WhatsApp"])


def _contact_name(contacts: List[Dict[str, Any]], wa_id: str) -> str:
    for contact in contacts or []:
        if contact.get("wa_id") == wa_id:
            return contact.get("profile", {}).get("name") or "Unknown Farmer"
    return "Unknown Farmer"


@router.get("")
async def verify_webhook(request: Request, credentials_service: CredentialsService = Depends(get_credentials_service)):
    """Meta subscription handshake."""
    params = request.query_params
    verify_token = (await credentials_service.get()).whatsapp.verify_token
    if params.get("hub.mode") == "subscribe" and verify_token and params.get("hub.verify_token") == verify_token:
        return PlainTextResponse(params.get("hub.challenge", ""))
    return PlainTextResponse("Forbidden", status_code=403)


@router.post("")
async def whatsapp_webhook(
    request: Request,
    meta_service: MetaWhatsAppService = Depends(get_meta_whatsapp_service),
    handler: WhatsAppHandler = Depends(get_whatsapp_handler),
    credentials_service: CredentialsService = Depends(get_credentials_service),
    farmer_service: FarmerService = Depends(get_farmer_service),
    call_log: CallLogService = Depends(get_call_log_service),
):
    """
    Send endpoint for the dashboard and inbound webhook for Meta.
    """
    payload = await read_payload(request)
    creds = (await credentials_service.get()).whatsapp

    if payload.get("action") == "send_message":
        body = SendMessageRequest.model_validate(payload)
        if not body.farmer_id or not body.phone_number or not body.message:
            raise InvalidRequest("farmerId, phoneNumber and message are required")
        farmer = await farmer_service.get(body.farmer_id)
        message_id = await meta_service.send_message(creds, body.phone_number, body.message)
        await call_log.log(farmer.id, CallStatus.META_WHATSAPP_SENT, CallType.WHATSAPP, transcript=body.message)
        return {"success": True, "messageId": message_id, "message": "Meta WhatsApp message sent successfully"}

    if payload.get("object") == "whatsapp_business_account":
        for entry in payload.get("entry", []):
            for change in entry.get("changes", []):
                if change.get("field") != "messages":
                    continue
                value = change.get("value", {})
                for message in value.get("messages") or []:
                    phone = message.get("from")
                    if not normalize_phone(phone):
                        logger.warning("Skipping WhatsApp message without a sender: %s", message.get("id"))
                        continue
                    text = message.get("text", {}).get("body")
                    farmer = await farmer_service.get_or_create(phone, _contact_name(value.get("contacts"), phone))
                    reply = await handler.handle_message(farmer, text)

                    if creds.configured:
                        try:
                            await meta_service.send_message(creds, phone, reply.text)
                        except VendorError as e:
                            logger.error("Auto-reply to %s not delivered: %s", phone, e.message)
                    else:
                        logger.warning("Meta WhatsApp not configured, auto-reply to %s not sent", phone)

                    await call_log.log(
                        farmer.id,
                        CallStatus.META_WHATSAPP_RECEIVED,
                        CallType.WHATSAPP,
                        **handler.record_fields(reply, text, farmer),
                    )
        return PlainTextResponse("OK")

    raise InvalidRequest("Invalid request")
