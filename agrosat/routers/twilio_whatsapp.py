from fastapi import APIRouter, Depends, Request, Response
from twilio.twiml.messaging_response import MessagingResponse

from agrosat.core.errors import InvalidRequest
from agrosat.core.http import read_payload
from agrosat.models.call_record import CallStatus, CallType
from agrosat.models.requests import SendMessageRequest
from agrosat.services.call_log_service import CallLogService, get_call_log_service
from agrosat.services.credentials_service import CredentialsService, get_credentials_service
from agrosat.services.farmer_service import FarmerService, get_farmer_service
from agrosat.services.twilio_service import TwilioService, get_twilio_service
from agrosat.services.whatsapp_handler import WhatsAppHandler, get_whatsapp_handler

router = APIRouter(prefix="/twilio/whatsapp", tags=["WhatsApp"])


@router.post("")
async def twilio_whatsapp(
    request: Request,
    twilio_service: TwilioService = Depends(get_twilio_service),
    handler: WhatsAppHandler = Depends(get_whatsapp_handler),
    credentials_service: CredentialsService = Depends(get_credentials_service),
    farmer_service: FarmerService = Depends(get_farmer_service),
    call_log: CallLogService = Depends(get_call_log_service),
):
    payload = await read_payload(request)

    if payload.get("action") == "send_message":
        body = SendMessageRequest.model_validate(payload)
        if not body.farmer_id or not body.phone_number or not body.message:
            raise InvalidRequest("farmerId, phoneNumber and message are required")
        farmer = await farmer_service.get(body.farmer_id)
        creds = (await credentials_service.get()).twilio_whatsapp
        sid = await twilio_service.send_whatsapp_message(creds, body.phone_number, body.message)
        await call_log.log(farmer.id, CallStatus.TWILIO_WHATSAPP_SENT, CallType.WHATSAPP, transcript=body.message)
        return {"success": True, "messageId": sid, "message": "Twilio WhatsApp message sent successfully"}

    if payload.get("MessageSid"):
        if not payload.get("From"):
            raise InvalidRequest("From is required")
        text = payload.get("Body")
        farmer = await farmer_service.get_or_create(payload.get("From"), payload.get("ProfileName"))
        reply = await handler.handle_message(farmer, text)
        await call_log.log(
            farmer.id,
            CallStatus.TWILIO_WHATSAPP_RECEIVED,
            CallType.WHATSAPP,
            **handler.record_fields(reply, text, farmer),
        )
        twiml = MessagingResponse()
        twiml.message(reply.text)
        return Response(content=str(twiml), media_type="application/xml")

    raise InvalidRequest("Invalid request")
