from fastapi import APIRouter, Depends

from agrosat.core.errors import InvalidRequest
from agrosat.models.call_record import CallStatus, CallType
from agrosat.models.requests import SendMessageRequest
from agrosat.services.africastalking_service import AfricasTalkingService, get_africastalking_service
from agrosat.services.call_log_service import CallLogService, get_call_log_service
from agrosat.services.credentials_service import CredentialsService, get_credentials_service
from agrosat.services.farmer_service import FarmerService, get_farmer_service

router = APIRouter(prefix="/sms", tags=["SMS"])


@router.post("")
async def send_sms(
    body: SendMessageRequest,
    sms_service: AfricasTalkingService = Depends(get_africastalking_service),
    credentials_service: CredentialsService = Depends(get_credentials_service),
    farmer_service: FarmerService = Depends(get_farmer_service),
    call_log: CallLogService = Depends(get_call_log_service),
):
    if not body.farmer_id or not body.phone_number or not body.message:
        raise InvalidRequest("farmerId, phoneNumber and message are required")
    farmer = await farmer_service.get(body.farmer_id)
    creds = (await credentials_service.get()).africas_talking

    result = await sms_service.send_sms(creds, body.phone_number, body.message)
    await call_log.log(farmer.id, CallStatus.SMS_SENT, CallType.SMS, transcript=body.message)

    recipients = result.get("Recipients") or [{}]
    return {
        "success": True,
        "messageId": recipients[0].get("messageId"),
        "message": result.get("Message") or "SMS sent successfully",
    }
