import httpx
import pytest
from beanie import PydanticObjectId

from agrosat.core.errors import InvalidRequest
from agrosat.models.call_record import CallRecord, CallStatus, CallType
from agrosat.models.carbon_credit import CarbonCredit
from agrosat.models.farmer import Farmer
from agrosat.services.carbon_credit_service import CarbonCreditService
from agrosat.services.farmer_service import FarmerService
from agrosat.services.translation_service import TranslationService, language_code
from agrosat.services.weather_service import FALLBACK_SUMMARY, WeatherService
from agrosat.services.whatsapp_handler import MAIN_MENU_TEXT, WELCOME_TEXT, WhatsAppHandler

GRAPH = "https://graph.facebook.com/v18.0"
META_CREDENTIALS = {
    "whatsapp": {
        "enabled": True,
        "accessToken": "EAAG-token",
        "appId": "123",
        "phoneNumberId": "555",
        "verifyToken": "let-me-in",
    }
}


def inbound(phone, text, name="Wanjiru"):
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "contacts": [{"wa_id": phone, "profile": {"name": name}}],
                            "messages": [{"from": phone, "type": "text", "text": {"body": text}}],
                        },
                    }
                ]
            }
        ],
    }


async def test_verify_handshake(client, save_credentials):
    params = {"hub.mode": "subscribe", "hub.verify_token": "let-me-in", "hub.challenge": "42"}

    no_token_stored = await client.get("/api/whatsapp", params=params)
    assert no_token_stored.status_code == 403

    await save_credentials(META_CREDENTIALS)
    ok = await client.get("/api/whatsapp", params=params)
    assert ok.status_code == 200
    assert ok.text == "42"

    wrong = await client.get("/api/whatsapp", params={**params, "hub.verify_token": "nope"})
    assert wrong.status_code == 403
    assert wrong.text == "Forbidden"


async def test_send_without_credentials_fails(client, vendor, register_farmer):
    farmer = await register_farmer()
    response = await client.post(
        "/api/whatsapp",
        json={"action": "send_message", "farmerId": farmer["id"], "phoneNumber": "+254700000001", "message": "hi"},
    )
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Meta WhatsApp credentials not configured"}
    assert vendor.requests == []


async def test_send_to_unknown_farmer_is_not_delivered(client, vendor, save_credentials):
    await save_credentials(META_CREDENTIALS)
    vendor.add("POST", f"{GRAPH}/555/messages", httpx.Response(200, json={"messages": [{"id": "wamid.1"}]}))

    response = await client.post(
        "/api/whatsapp",
        json={"action": "send_message", "farmerId": str(PydanticObjectId()), "phoneNumber": "+254700000001", "message": "hi"},
    )
    assert response.status_code == 404
    assert response.json()["success"] is False
    assert vendor.requests == []
    assert await CallRecord.find_all().count() == 0


async def test_send_requires_all_fields(client):
    response = await client.post("/api/whatsapp", json={"action": "send_message", "message": "hi"})
    assert response.status_code == 400


async def test_send_calls_graph_api_and_logs(client, vendor, save_credentials, register_farmer):
    await save_credentials(META_CREDENTIALS)
    farmer = await register_farmer()
    vendor.add("POST", f"{GRAPH}/555/messages", httpx.Response(200, json={"messages": [{"id": "wamid.1"}]}))

    response = await client.post(
        "/api/whatsapp",
        json={"action": "send_message", "farmerId": farmer["id"], "phoneNumber": "+254 700 000 001", "message": "Rain expected"},
    )
    assert response.status_code == 200
    assert response.json()["messageId"] == "wamid.1"

    sent = vendor.calls_to(f"{GRAPH}/555/messages")
    assert len(sent) == 1
    assert sent[0].headers["Authorization"] == "Bearer EAAG-token"

    record = await CallRecord.find_one(CallRecord.farmer_id == PydanticObjectId(farmer["id"]))
    assert record.call_status == CallStatus.META_WHATSAPP_SENT
    assert record.call_type == CallType.WHATSAPP
    assert record.transcript == "Rain expected"


async def test_send_surfaces_vendor_errors(client, vendor, save_credentials, register_farmer):
    await save_credentials(META_CREDENTIALS)
    farmer = await register_farmer()
    vendor.add("POST", f"{GRAPH}/555/messages", httpx.Response(401, json={"error": {"message": "bad token"}}))

    response = await client.post(
        "/api/whatsapp",
        json={"action": "send_message", "farmerId": farmer["id"], "phoneNumber": "+254700000001", "message": "x"},
    )
    assert response.status_code == 500
    assert response.json()["message"] == "Meta WhatsApp API error: 401"
    assert await CallRecord.find_all().count() == 0


async def test_inbound_message_creates_farmer_and_replies(client, vendor, save_credentials):
    await save_credentials(META_CREDENTIALS)
    vendor.add("POST", f"{GRAPH}/555/messages", httpx.Response(200, json={"messages": [{"id": "wamid.2"}]}))

    response = await client.post("/api/whatsapp", json=inbound("254711222333", "MENU"))
    assert response.status_code == 200
    assert response.text == "OK"

    farmer = await Farmer.find_one(Farmer.phone_number == "+254711222333")
    assert farmer.full_name == "Wanjiru"

    reply = vendor.calls_to(f"{GRAPH}/555/messages")[0]
    assert b"SpaceZ Agro Platform Menu" in reply.content

    record = await CallRecord.find_one(CallRecord.farmer_id == farmer.id)
    assert record.call_status == CallStatus.META_WHATSAPP_RECEIVED
    assert record.transcript.startswith('Received: "MENU" | Replied: ')


async def test_inbound_message_without_sender_is_skipped(client, vendor, save_credentials):
    await save_credentials(META_CREDENTIALS)
    payload = inbound("254711222555", "menu")
    payload["entry"][0]["changes"][0]["value"]["messages"] = [{"id": "wamid.x", "type": "text", "text": {"body": "menu"}}]

    for _ in range(2):
        response = await client.post("/api/whatsapp", json=payload)
        assert response.status_code == 200
        assert response.text == "OK"

    assert await Farmer.find_all().count() == 0
    assert await CallRecord.find_all().count() == 0
    assert vendor.requests == []


async def test_inbound_batch_keeps_messages_with_a_sender(client):
    payload = inbound("254711222666", "menu")
    messages = payload["entry"][0]["changes"][0]["value"]["messages"]
    messages.insert(0, {"type": "text", "text": {"body": "hi"}})

    response = await client.post("/api/whatsapp", json=payload)
    assert response.text == "OK"
    assert await Farmer.find_all().count() == 1
    assert await Farmer.find_one(Farmer.phone_number == "+254711222666") is not None


async def test_get_or_create_requires_a_phone_number(db):
    service = FarmerService()
    for phone in ("", None, "whatsapp:"):
        with pytest.raises(InvalidRequest):
            await service.get_or_create(phone)
    assert await Farmer.find_all().count() == 0


async def test_inbound_without_credentials_still_logs(client, vendor):
    response = await client.post("/api/whatsapp", json=inbound("254711222444", "good"))
    assert response.text == "OK"
    assert vendor.requests == []

    record = await CallRecord.find_one(CallRecord.call_status == CallStatus.META_WHATSAPP_RECEIVED)
    assert record.crop_condition == 1


async def test_unsupported_payloads(client):
    text = await client.post("/api/whatsapp", content=b"hello", headers={"content-type": "text/plain"})
    assert text.status_code == 400
    assert text.json()["message"] == "Unsupported content type"

    unknown = await client.post("/api/whatsapp", json={"object": "page"})
    assert unknown.status_code == 400


class FakeWeather(WeatherService):
    async def summary(self, lat, lon):
        return FALLBACK_SUMMARY


@pytest.fixture
def handler():
    return WhatsAppHandler(FakeWeather(), TranslationService(), CarbonCreditService())


@pytest.fixture
async def farmer(db):
    farmer = Farmer(phone_number="+254700000007", crop="beans")
    await farmer.insert()
    return farmer


@pytest.mark.parametrize(
    "message, expected",
    [
        ("menu", MAIN_MENU_TEXT),
        ("6", MAIN_MENU_TEXT),
        ("hello there", WELCOME_TEXT),
        ("I planted 60 rows", WELCOME_TEXT),
    ],
)
async def test_keyword_routing(handler, farmer, message, expected):
    reply = await handler.handle_message(farmer, message)
    assert reply.text == expected


async def test_weather_and_crop_replies(handler, farmer):
    weather = await handler.handle_message(farmer, "2")
    assert FALLBACK_SUMMARY in weather.text

    poor = await handler.handle_message(farmer, "Poor")
    assert poor.crop_condition == 3
    fields = WhatsAppHandler.record_fields(poor, "Poor", farmer)
    assert fields["crop_condition"] == 3
    assert fields["crop_selected"] == "beans"


async def test_join_enrolls_once(handler, farmer):
    first = await handler.handle_message(farmer, "JOIN")
    assert first.opted_in_carbon is True
    assert "AGS-" in first.text

    second = await handler.handle_message(farmer, "join")
    assert second.opted_in_carbon is False
    assert "already enrolled" in second.text
    assert await CarbonCredit.find_all().count() == 1


async def test_satellite_reply_without_insights(handler, farmer):
    reply = await handler.handle_message(farmer, "satellite please")
    assert "No satellite analysis is available" in reply.text


def test_language_codes():
    assert language_code("Swahili") == "sw"
    assert language_code("fr") == "fr"
    assert language_code("Klingon") == "en"
    assert language_code(None) == "en"


async def test_english_is_not_translated():
    assert await TranslationService().translate_text("Hello", "English") == "Hello"
