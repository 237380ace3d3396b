from fastapi import APIRouter, Depends

from agrosat.models.api_credentials import CarbonRegistryCredentials
from agrosat.models.requests import (
    AfricasTalkingTest,
    CarbonRegistryTest,
    ElevenLabsTest,
    MapsTest,
    SentinelHubTest,
    TwilioTest,
    WhatsAppTest,
)
from agrosat.services.africastalking_service import AfricasTalkingService, get_africastalking_service
from agrosat.services.carbon_credit_service import CarbonCreditService, get_carbon_credit_service
from agrosat.services.elevenlabs_service import ElevenLabsService, get_elevenlabs_service
from agrosat.services.maps_service import MapsService, get_maps_service
from agrosat.services.meta_whatsapp_service import MetaWhatsAppService, get_meta_whatsapp_service
from agrosat.services.sentinel_hub_service import SentinelHubService, get_sentinel_hub_service
from agrosat.services.twilio_service import TwilioService, get_twilio_service

router = APIRouter(prefix="/test", tags=["Connection tests"])


@router.post("/sentinel-hub")
async def test_sentinel_hub(body: SentinelHubTest, service: SentinelHubService = Depends(get_sentinel_hub_service)):
    if not body.client_id or not body.client_secret:
        return {"success": False, "message": "Client ID and Client Secret are required"}
    service.client_id = body.client_id
    service.client_secret = body.client_secret
    return await service.test_connection()


@router.post("/twilio")
async def test_twilio(body: TwilioTest, service: TwilioService = Depends(get_twilio_service)):
    return await service.test_connection(body.account_sid, body.auth_token, body.phone_number)


@router.post("/whatsapp")
async def test_whatsapp(body: WhatsAppTest, service: MetaWhatsAppService = Depends(get_meta_whatsapp_service)):
    return await service.test_connection(body.access_token, body.app_id, body.phone_number_id)


@router.post("/elevenlabs")
async def test_elevenlabs(body: ElevenLabsTest, service: ElevenLabsService = Depends(get_elevenlabs_service)):
    return await service.test_connection(body.api_key, body.agent_id)


@router.post("/africastalking")
async def test_africastalking(body: AfricasTalkingTest, service: AfricasTalkingService = Depends(get_africastalking_service)):
    return await service.test_connection(body.username, body.api_key, body.sender_id, body.sandbox_mode)


@router.post("/maps")
async def test_maps(body: MapsTest, service: MapsService = Depends(get_maps_service)):
    return await service.test_connection(
        body.provider,
        google_maps_api_key=body.google_maps_api_key,
        mapbox_access_token=body.mapbox_access_token,
        here_api_key=body.here_api_key,
    )


@router.post("/carbon-credit")
async def test_carbon_registry(body: CarbonRegistryTest, service: CarbonCreditService = Depends(get_carbon_credit_service)):
    return await service.test_registry(CarbonRegistryCredentials(api_key=body.api_key, base_url=body.base_url))
