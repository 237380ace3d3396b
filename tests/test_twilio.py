from types import SimpleNamespace

from beanie import PydanticObjectId
from twilio.base.exceptions import TwilioRestException

from agrosat.models.call_record import CallRecord, CallStatus, CallType
from agrosat.models.carbon_credit import CarbonCredit
from agrosat.models.farmer import Farmer

TWILIO_CREDENTIALS = {
    "twilioWhatsapp": {
        "enabled": True,
        "accountSid": "AC123",
        "authToken": "secret",
        "phoneNumber": "+15005550006",
    }
}


async def ivr(client, digits=None, step=None, phone="+254700000001"):
    form = {"From": phone, "CallSid": "CA1"}
    if digits is not None:
        form["Digits"] = digits
    params = {"step": step} if step else None
    response = await client.post("/api/twilio/ivr", data=form, params=params)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")
    return response.text


async def test_whatsapp_send_goes_through_twilio(client, twilio, save_credentials, register_farmer):
    await save_credentials(TWILIO_CREDENTIALS)
    farmer = await register_farmer()

    response = await client.post(
        "/api/twilio/whatsapp",
        json={"action": "send_message", "farmerId": farmer["id"], "phoneNumber": "+254700000001", "message": "Hello"},
    )
    assert response.status_code == 200
    assert response.json()["messageId"] == "SM0001"
    assert twilio.sent == [{"to": "+254700000001", "body": "Hello"}]

    record = await CallRecord.find_one(CallRecord.farmer_id == PydanticObjectId(farmer["id"]))
    assert record.call_status == CallStatus.TWILIO_WHATSAPP_SENT


async def test_whatsapp_send_without_credentials(client, twilio, register_farmer):
    farmer = await register_farmer()
    response = await client.post(
        "/api/twilio/whatsapp",
        json={"action": "send_message", "farmerId": farmer["id"], "phoneNumber": "+254700000001", "message": "Hello"},
    )
    assert response.status_code == 500
    assert response.json()["message"] == "Twilio WhatsApp credentials not configured"
    assert twilio.sent == []


async def test_whatsapp_send_to_unknown_farmer(client, twilio, save_credentials):
    await save_credentials(TWILIO_CREDENTIALS)
    response = await client.post(
        "/api/twilio/whatsapp",
        json={"action": "send_message", "farmerId": str(PydanticObjectId()), "phoneNumber": "+254700000001", "message": "Hello"},
    )
    assert response.status_code == 404
    assert response.json()["success"] is False
    assert twilio.sent == []
    assert await CallRecord.find_all().count() == 0


async def test_inbound_whatsapp_returns_twiml(client, twilio):
    response = await client.post(
        "/api/twilio/whatsapp",
        data={"MessageSid": "SM9", "From": "whatsapp:+254722000111", "Body": "crop", "ProfileName": "Kip"},
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert "<Response><Message>" in response.text
    assert "Crop Condition Report" in response.text

    farmer = await Farmer.find_one(Farmer.phone_number == "+254722000111")
    assert farmer.full_name == "Kip"
    record = await CallRecord.find_one(CallRecord.farmer_id == farmer.id)
    assert record.call_status == CallStatus.TWILIO_WHATSAPP_RECEIVED


async def test_inbound_whatsapp_requires_sender(client):
    response = await client.post("/api/twilio/whatsapp", data={"MessageSid": "SM9", "Body": "hi"})
    assert response.status_code == 400


async def test_ivr_rejects_unknown_caller(client):
    twiml = await ivr(client, phone="+19999999999")
    assert "Your phone number is not registered" in twiml
    assert "<Hangup />" in twiml


async def test_ivr_menu_greets_farmer(client, register_farmer):
    await register_farmer()
    twiml = await ivr(client)
    assert "Hello Amina Otieno, welcome to AgroSat." in twiml
    assert "<Gather " in twiml
    assert 'action="/api/twilio/ivr"' in twiml
    assert 'numDigits="1"' in twiml


async def test_ivr_crop_condition_is_recorded(client, register_farmer):
    farmer = await register_farmer()

    prompt = await ivr(client, digits="1")
    assert "step=crop_condition" in prompt
    assert await CallRecord.find_all().count() == 0

    done = await ivr(client, digits="2", step="crop_condition")
    assert "crop condition as Fair" in done

    record = await CallRecord.find_one(CallRecord.farmer_id == PydanticObjectId(farmer["id"]))
    assert record.crop_condition == 2
    assert record.crop_selected == "maize"
    assert record.call_type == CallType.TRADITIONAL_IVR
    assert record.transcript == "Farmer reported crop condition: Fair"


async def test_ivr_invalid_digits_write_nothing(client, register_farmer):
    await register_farmer()

    assert "Invalid selection" in await ivr(client, digits="7")
    assert "Invalid selection" in await ivr(client, digits="9", step="crop_condition")
    assert await CallRecord.find_all().count() == 0


async def test_ivr_agent_without_support_number(client, register_farmer):
    await register_farmer()
    assert "agents are currently unavailable" in await ivr(client, digits="0")


async def test_ivr_carbon_opt_in_once(client, register_farmer):
    farmer = await register_farmer()

    info = await ivr(client, digits="2", step="carbon_optin")
    assert "Carbon Credit Program pays you" in info

    enrolled = await ivr(client, digits="1", step="carbon_optin")
    assert "Congratulations!" in enrolled
    credit = await CarbonCredit.find_one(CarbonCredit.farmer_id == PydanticObjectId(farmer["id"]))
    assert credit.practices_reported == "IVR Opt-in"
    assert credit.registry_id.startswith("AGS-")

    again = await ivr(client, digits="1", step="carbon_optin")
    assert "already enrolled" in again
    assert await CarbonCredit.find_all().count() == 1
    opt_ins = await CallRecord.find(CallRecord.opted_in_carbon == True).count()  # noqa: E712
    assert opt_ins == 1


async def test_outbound_call_demo_mode(client, twilio, register_farmer):
    farmer = await register_farmer()

    response = await client.get("/api/twilio/ivr", params={"farmer_id": farmer["id"]})
    assert response.status_code == 200
    assert response.json()["status"] == "demo_initiated"
    assert twilio.calls == []

    record = await CallRecord.find_one(CallRecord.farmer_id == PydanticObjectId(farmer["id"]))
    assert record.call_status == CallStatus.DEMO_INITIATED


async def test_outbound_call_placed(client, twilio, save_credentials, register_farmer):
    await save_credentials(TWILIO_CREDENTIALS)
    farmer = await register_farmer()

    response = await client.get("/api/twilio/ivr", params={"farmer_id": farmer["id"]})
    body = response.json()
    assert body["status"] == "initiated"
    assert body["callSid"] == "CA0001"
    assert twilio.calls[0]["to"] == "+254700000001"
    assert twilio.calls[0]["url"].endswith("/api/twilio/ivr")

    record = await CallRecord.find_one(CallRecord.farmer_id == PydanticObjectId(farmer["id"]))
    assert record.call_status == CallStatus.INITIATED
    assert "CA0001" in record.transcript


async def test_outbound_call_requires_farmer(client, twilio):
    assert (await client.get("/api/twilio/ivr")).status_code == 400
    assert (await client.get("/api/twilio/ivr", params={"farmer_id": str(PydanticObjectId())})).status_code == 404


class FakeTwilioClient:
    """Stands in for twilio.rest.Client on the account check."""

    friendly_name = "AgroSat Kenya"
    numbers = ["+15005550006"]
    fetch_error = None

    def __init__(self, account_sid, auth_token):
        self.account_sid = account_sid
        self.api = SimpleNamespace(accounts=self._account)
        self.incoming_phone_numbers = SimpleNamespace(
            list=lambda: [SimpleNamespace(phone_number=n) for n in self.numbers]
        )

    def _account(self, sid):
        def fetch():
            if self.fetch_error:
                raise self.fetch_error
            return SimpleNamespace(sid=sid, friendly_name=self.friendly_name)

        return SimpleNamespace(fetch=fetch)


async def test_account_check_finds_phone_number(client, monkeypatch):
    monkeypatch.setattr("agrosat.services.twilio_service.Client", FakeTwilioClient)

    response = await client.post(
        "/api/test/twilio", json={"accountSid": "AC123", "authToken": "secret", "phoneNumber": "+15005550006"}
    )
    assert response.json() == {
        "success": True,
        "message": "Successfully connected to Twilio account: AgroSat Kenya",
    }


async def test_account_check_rejects_foreign_phone_number(client, monkeypatch):
    monkeypatch.setattr("agrosat.services.twilio_service.Client", FakeTwilioClient)

    response = await client.post(
        "/api/test/twilio", json={"accountSid": "AC123", "authToken": "secret", "phoneNumber": "+15550000000"}
    )
    assert response.json() == {
        "success": False,
        "message": "Phone number +15550000000 not found in your Twilio account",
    }


async def test_account_check_with_bad_credentials(client, monkeypatch):
    class RefusingClient(FakeTwilioClient):
        fetch_error = TwilioRestException(401, "/2010-04-01/Accounts/AC123.json", "Authenticate")

    monkeypatch.setattr("agrosat.services.twilio_service.Client", RefusingClient)

    response = await client.post("/api/test/twilio", json={"accountSid": "AC123", "authToken": "wrong"})
    assert response.json() == {"success": False, "message": "Twilio API test failed: 401 - Invalid credentials"}
