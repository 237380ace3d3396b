"""
ElevenLabs Conversational AI voice agent.
Places outbound phone conversations for carbon-program enrollment and folds
the agent's post-call analysis back into the farmer's profile.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Depends
from pydantic import BaseModel, Field

from agrosat.core.config import settings
from agrosat.core.errors import CredentialsNotConfigured, NotFoundError, VendorError
from agrosat.core.http import get_http_transport
from agrosat.models.api_credentials import ElevenLabsCredentials
from agrosat.models.call_record import CallStatus, CallType
from agrosat.models.farmer import CropDetail, Farmer, FieldLocation
from agrosat.services.call_log_service import CallLogService, get_call_log_service
from agrosat.services.carbon_credit_service import (
    VOICE_CREDIT_PRICE,
    CarbonCreditService,
    calculate_estimated_credits,
    get_carbon_credit_service,
)
from agrosat.services.farmer_service import FarmerService, get_farmer_service

logger = logging.getLogger(__name__)

ELEVENLABS_URL = "https://api.elevenlabs.io/v1"

VOICE_LANGUAGE_CODES = {
    "English": "en",
    "Swahili": "sw",
    "French": "fr",
    "Arabic": "ar",
    "Amharic": "am",
    "Hausa": "ha",
    "Yoruba": "yo",
}


def voice_language_code(language: Optional[str]) -> str:
    return VOICE_LANGUAGE_CODES.get(language or "English", "en")


class VoiceAnalysis(BaseModel):
    crop_details: List[CropDetail] = Field(default_factory=list)
    sustainable_practices: List[str] = Field(default_factory=list)
    carbon_opt_in: bool = False
    field_locations: List[FieldLocation] = Field(default_factory=list)


class ConversationEvent(BaseModel):
    """Webhook body posted by ElevenLabs as a conversation progresses."""

    conversation_id: str
    user_id: str
    agent_id: Optional[str] = None
    status: str
    transcript: Optional[str] = None
    analysis: Optional[VoiceAnalysis] = None


class ElevenLabsService:
    def __init__(
        self,
        farmer_service: FarmerService,
        call_log: CallLogService,
        carbon_service: CarbonCreditService,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.farmer_service = farmer_service
        self.call_log = call_log
        self.carbon_service = carbon_service
        self.transport = transport
        self.timeout = settings.HTTP_TIMEOUT

    def _client(self, api_key: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=ELEVENLABS_URL,
            timeout=self.timeout,
            transport=self.transport,
            headers={"xi-api-key": api_key},
        )

    async def initiate_call(
        self,
        creds: ElevenLabsCredentials,
        farmer_id: str,
        phone_number: str,
        farmer_name: str,
        language: Optional[str] = "English",
    ) -> Dict[str, Any]:
        if not creds.configured:
            raise CredentialsNotConfigured("ElevenLabs")

        farmer = await self.farmer_service.get(farmer_id)
        language = language or "English"
        body = {
            "agent_id": creds.agent_id,
            "user_id": str(farmer.id),
            "mode": "phone_call",
            "phone_number": phone_number,
            "context": {
                "farmer_name": farmer_name,
                "phone_number": phone_number,
                "language": language,
                "existing_crops": [c.model_dump() for c in farmer.crop_details],
                "existing_fields": [f.model_dump() for f in farmer.field_locations],
                "purpose": "carbon_credit_enrollment",
            },
            "language": voice_language_code(language),
            "webhook_url": f"{settings.PUBLIC_BASE_URL.rstrip('/')}/api/elevenlabs/voice",
        }
        try:
            async with self._client(creds.api_key) as client:
                response = await client.post("/convai/conversations", json=body)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("ElevenLabs conversation for farmer %s failed: %s", farmer.id, e.response.text)
            raise VendorError(f"ElevenLabs API error: {e.response.status_code} - {e.response.text}")
        except httpx.HTTPError as e:
            logger.error("ElevenLabs unreachable: %s", e)
            raise VendorError(f"ElevenLabs API error: {e}")

        conversation_id = response.json().get("conversation_id")
        await self.call_log.log(
            farmer.id,
            CallStatus.ELEVENLABS_INITIATED,
            CallType.ELEVENLABS_VOICE,
            transcript=f"Voice conversation initiated. Conversation ID: {conversation_id}",
        )
        return {
            "success": True,
            "callId": conversation_id,
            "voiceModel": "ElevenLabs Conversational AI",
            "status": "initiated",
            "estimatedDuration": "3-5 minutes",
        }

    async def handle_webhook(self, event: ConversationEvent) -> None:
        farmer = await self.farmer_service.get(event.user_id)
        record = await self.call_log.latest(farmer.id, CallType.ELEVENLABS_VOICE)
        if record is None:
            raise NotFoundError(f"No voice call on record for farmer {farmer.id}")

        try:
            record.call_status = CallStatus(f"elevenlabs_{event.status}")
        except ValueError:
            logger.warning("Unknown ElevenLabs status '%s' for conversation %s", event.status, event.conversation_id)
        record.transcript = event.transcript or f"Conversation {event.status}"
        record.touch()
        await record.save()

        if event.status == "completed" and event.analysis:
            await self.apply_analysis(farmer, event.analysis, event.conversation_id, record)

    async def apply_analysis(self, farmer: Farmer, analysis: VoiceAnalysis, conversation_id: str, record) -> None:
        changes = {}
        if analysis.crop_details:
            changes["crop_details"] = analysis.crop_details
        if analysis.field_locations:
            changes["field_locations"] = analysis.field_locations
        if changes:
            farmer = await self.farmer_service.update(farmer.id, changes)

        if not (analysis.carbon_opt_in and analysis.sustainable_practices):
            logger.info("Voice analysis applied for farmer %s", farmer.id)
            return

        acreage = sum(c.hectareage for c in analysis.crop_details)
        crop_type = analysis.crop_details[0].crop_type if analysis.crop_details else "mixed"
        estimated = calculate_estimated_credits(analysis.sustainable_practices, acreage, crop_type)
        await self.carbon_service.enroll(
            farmer,
            analysis.sustainable_practices,
            estimated,
            VOICE_CREDIT_PRICE,
            prefix="VOICE",
        )

        record.opted_in_carbon = True
        record.transcript = (
            f"Voice enrollment completed. Conversation ID: {conversation_id}. "
            f"Carbon credit opt-in: YES. Estimated credits: {estimated:.1f}"
        )
        await record.save()
        logger.info("Carbon enrollment processed via voice for farmer %s", farmer.id)

    async def test_connection(self, api_key: str, agent_id: str) -> Dict[str, Any]:
        if not api_key or not agent_id:
            return {"success": False, "message": "API Key and Agent ID are required"}

        try:
            async with self._client(api_key) as client:
                user = await client.get("/user")
                if user.status_code != 200:
                    return {"success": False, "message": f"ElevenLabs API test failed: {user.status_code} - Invalid API key"}
                agent = await client.get(f"/convai/agents/{agent_id}")
        except httpx.HTTPError as e:
            logger.error("ElevenLabs connection test failed: %s", e)
            return {"success": False, "message": f"Test failed: {e}"}

        if agent.status_code != 200:
            return {"success": False, "message": f"Agent ID {agent_id} not found or not accessible"}
        return {
            "success": True,
            "message": (
                f"Successfully connected to ElevenLabs API. User: {user.json().get('email') or 'Unknown'}, "
                f"Agent: {agent.json().get('name') or agent_id}"
            ),
        }


def get_elevenlabs_service(
    farmer_service: FarmerService = Depends(get_farmer_service),
    call_log: CallLogService = Depends(get_call_log_service),
    carbon_service: CarbonCreditService = Depends(get_carbon_credit_service),
    transport=Depends(get_http_transport),
):
    return ElevenLabsService(farmer_service, call_log, carbon_service, transport=transport)
