import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from agrosat.core.config import settings
from agrosat.core.errors import CredentialsNotConfigured, InvalidRequest
from agrosat.models.call_record import CallStatus, CallType
from agrosat.services.call_log_service import CallLogService, get_call_log_service
from agrosat.services.credentials_service import CredentialsService, get_credentials_service
from agrosat.services.farmer_service import FarmerService, get_farmer_service
from agrosat.services.ivr_service import IVR_PATH, IvrService, get_ivr_service
from agrosat.services.twilio_service import TwilioService, get_twilio_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/twilio/ivr", tags=["IVR"])


@router.post("")
async def ivr_webhook(
    request: Request,
    step: Optional[str] = None,
    ivr_service: IvrService = Depends(get_ivr_service),
):
    """Twilio voice webhook; every keypad press lands here."""
    form = await request.form()
    twiml = await ivr_service.handle(form.get("From"), form.get("Digits"), step)
    logger.debug("IVR %s step=%s digits=%s", form.get("CallSid"), step, form.get("Digits"))
    return Response(content=twiml, media_type="text/xml")


@router.get("")
async def start_outbound_call(
    farmer_id: Optional[str] = None,
    farmer_service: FarmerService = Depends(get_farmer_service),
    twilio_service: TwilioService = Depends(get_twilio_service),
    credentials_service: CredentialsService = Depends(get_credentials_service),
    call_log: CallLogService = Depends(get_call_log_service),
):
    if not farmer_id:
        raise InvalidRequest("farmer_id is required")
    farmer = await farmer_service.get(farmer_id)
    creds = (await credentials_service.get()).twilio_whatsapp

    try:
        call_sid = await twilio_service.place_call(
            creds, farmer.phone_number, f"{settings.PUBLIC_BASE_URL.rstrip('/')}{IVR_PATH}"
        )
    except CredentialsNotConfigured:
        logger.warning("Twilio voice not configured, IVR call to %s recorded as demo", farmer.phone_number)
        await call_log.log(
            farmer.id,
            CallStatus.DEMO_INITIATED,
            CallType.TRADITIONAL_IVR,
            transcript="Demo IVR call, Twilio credentials not configured",
            crop_selected=farmer.crop,
        )
        return {
            "success": True,
            "message": f"Call initiated to {farmer.phone_number}",
            "farmer": farmer.full_name,
            "status": "demo_initiated",
        }

    await call_log.log(
        farmer.id,
        CallStatus.INITIATED,
        CallType.TRADITIONAL_IVR,
        transcript=f"Outbound IVR call placed. Call SID: {call_sid}",
        crop_selected=farmer.crop,
    )
    return {
        "success": True,
        "message": f"Call initiated to {farmer.phone_number}",
        "farmer": farmer.full_name,
        "status": "initiated",
        "callSid": call_sid,
    }
