import json

import httpx
from beanie import PydanticObjectId

from agrosat.models.call_record import CallRecord, CallStatus, CallType
from agrosat.models.carbon_credit import CarbonCredit
from agrosat.models.farmer import Farmer

ELEVENLABS = "https://api.elevenlabs.io/v1"
VOICE_CREDENTIALS = {"elevenLabs": {"apiKey": "xi-key", "agentId": "agent-7"}}


def initiate(farmer_id, **overrides):
    body = {
        "action": "initiate_call",
        "farmerId": farmer_id,
        "phoneNumber": "+254700000001",
        "farmerName": "Amina Otieno",
        "language": "Swahili",
    }
    body.update(overrides)
    return body


async def test_initiate_requires_parameters(client):
    response = await client.post("/api/elevenlabs/voice", json={"action": "initiate_call", "farmerId": "x"})
    assert response.status_code == 400
    assert response.json()["message"] == "Missing required parameters: farmerId, phoneNumber, farmerName"


async def test_initiate_in_demo_mode(client, vendor, register_farmer):
    farmer = await register_farmer()

    response = await client.post("/api/elevenlabs/voice", json=initiate(farmer["id"]))
    body = response.json()
    assert body["status"] == "demo_initiated"
    assert body["voiceModel"] == "ElevenLabs Demo Mode"
    assert body["callId"].startswith("demo_")
    assert vendor.requests == []


async def test_initiate_posts_conversation(client, vendor, save_credentials, register_farmer):
    await save_credentials(VOICE_CREDENTIALS)
    farmer = await register_farmer()
    vendor.add("POST", f"{ELEVENLABS}/convai/conversations", httpx.Response(200, json={"conversation_id": "conv-1"}))

    response = await client.post("/api/elevenlabs/voice", json=initiate(farmer["id"]))
    assert response.status_code == 200
    assert response.json()["callId"] == "conv-1"

    sent = vendor.calls_to(f"{ELEVENLABS}/convai/conversations")[0]
    assert sent.headers["xi-api-key"] == "xi-key"
    payload = json.loads(sent.content)
    assert payload["agent_id"] == "agent-7"
    assert payload["user_id"] == farmer["id"]
    assert payload["language"] == "sw"
    assert payload["context"]["purpose"] == "carbon_credit_enrollment"

    record = await CallRecord.find_one(CallRecord.farmer_id == PydanticObjectId(farmer["id"]))
    assert record.call_status == CallStatus.ELEVENLABS_INITIATED
    assert record.call_type == CallType.ELEVENLABS_VOICE


async def test_initiate_vendor_failure(client, vendor, save_credentials, register_farmer):
    await save_credentials(VOICE_CREDENTIALS)
    farmer = await register_farmer()
    vendor.add("POST", f"{ELEVENLABS}/convai/conversations", httpx.Response(422, text="bad agent"))

    response = await client.post("/api/elevenlabs/voice", json=initiate(farmer["id"]))
    assert response.status_code == 500
    assert response.json()["message"] == "ElevenLabs API error: 422 - bad agent"
    assert await CallRecord.find_all().count() == 0


async def test_completed_conversation_updates_farmer_and_enrolls(client, vendor, save_credentials, register_farmer):
    await save_credentials(VOICE_CREDENTIALS)
    farmer = await register_farmer()
    vendor.add("POST", f"{ELEVENLABS}/convai/conversations", httpx.Response(200, json={"conversation_id": "conv-2"}))
    await client.post("/api/elevenlabs/voice", json=initiate(farmer["id"]))

    in_progress = await client.post(
        "/api/elevenlabs/voice",
        json={"conversation_id": "conv-2", "user_id": farmer["id"], "status": "in_progress"},
    )
    assert in_progress.json() == {"success": True}
    record = await CallRecord.find_one(CallRecord.farmer_id == PydanticObjectId(farmer["id"]))
    assert record.call_status == CallStatus.ELEVENLABS_IN_PROGRESS

    completed = await client.post(
        "/api/elevenlabs/voice",
        json={
            "conversation_id": "conv-2",
            "user_id": farmer["id"],
            "status": "completed",
            "transcript": "...",
            "analysis": {
                "crop_details": [{"crop_type": "rice", "hectareage": 10}],
                "sustainable_practices": ["no-till", "cover-cropping"],
                "carbon_opt_in": True,
                "field_locations": [{"field_name": "Paddy", "latitude": -0.5, "longitude": 37.3}],
            },
        },
    )
    assert completed.status_code == 200

    updated = await Farmer.get(PydanticObjectId(farmer["id"]))
    assert updated.crop_details[0].crop_type == "rice"
    assert updated.field_locations[0].field_name == "Paddy"

    credit = await CarbonCredit.find_one(CarbonCredit.farmer_id == updated.id)
    assert credit.registry_id.startswith("VOICE-")
    assert credit.estimated_credits == 9.6
    assert credit.credit_price == 20.0
    assert credit.total_value == 192.0

    record = await CallRecord.find_one(CallRecord.farmer_id == updated.id)
    assert record.call_status == CallStatus.ELEVENLABS_COMPLETED
    assert record.opted_in_carbon is True
    assert "Estimated credits: 9.6" in record.transcript


async def test_webhook_without_prior_call(client, register_farmer):
    farmer = await register_farmer()
    response = await client.post(
        "/api/elevenlabs/voice",
        json={"conversation_id": "conv-3", "user_id": farmer["id"], "status": "completed"},
    )
    assert response.status_code == 404


async def test_unrecognised_body(client):
    response = await client.post("/api/elevenlabs/voice", json={"hello": "world"})
    assert response.status_code == 400
