import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from pydantic import ValidationError

from agrosat.core.errors import CredentialsNotConfigured, InvalidRequest
from agrosat.models.requests import InitiateCallRequest
from agrosat.services.credentials_service import CredentialsService, get_credentials_service
from agrosat.services.elevenlabs_service import ConversationEvent, ElevenLabsService, get_elevenlabs_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/elevenlabs/voice", tags=["Voice"])


@router.post("")
async def voice_handler(
    payload: Dict[str, Any] = Body(...),
    voice_service: ElevenLabsService = Depends(get_elevenlabs_service),
    credentials_service: CredentialsService = Depends(get_credentials_service),
):
    if payload.get("action") == "initiate_call":
        body = InitiateCallRequest.model_validate(payload)
        if not body.farmer_id or not body.phone_number or not body.farmer_name:
            raise InvalidRequest("Missing required parameters: farmerId, phoneNumber, farmerName")

        creds = (await credentials_service.get()).eleven_labs
        try:
            return await voice_service.initiate_call(
                creds, body.farmer_id, body.phone_number, body.farmer_name, body.language
            )
        except CredentialsNotConfigured:
            logger.warning("ElevenLabs not configured, answering demo call for farmer %s", body.farmer_id)
            return {
                "success": True,
                "callId": f"demo_{int(time.time() * 1000)}",
                "voiceModel": "ElevenLabs Demo Mode",
                "status": "demo_initiated",
                "estimatedDuration": "3-5 minutes",
                "note": "Demo mode - configure ElevenLabs credentials for real voice calls",
            }

    if payload.get("conversation_id"):
        try:
            event = ConversationEvent.model_validate(payload)
        except ValidationError as e:
            raise InvalidRequest(f"Malformed conversation event: {e.errors()[0]['msg']}")
        await voice_service.handle_webhook(event)
        return {"success": True}

    raise InvalidRequest("Invalid request")
