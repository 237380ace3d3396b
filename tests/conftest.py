from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest
from beanie import init_beanie
from mongomock_motor import AsyncMongoMockClient

from agrosat.core.database import document_models
from agrosat.core.errors import CredentialsNotConfigured
from agrosat.core.http import get_http_transport
from agrosat.main import app
from agrosat.services.twilio_service import get_twilio_service

StubResponse = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class VendorStub:
    """Routes outbound vendor calls to canned responses by method and URL prefix."""

    def __init__(self):
        self.routes: List[Tuple[str, str, StubResponse]] = []
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url_prefix: str, response: StubResponse) -> None:
        self.routes.append((method.upper(), url_prefix, response))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, prefix, response in self.routes:
            if request.method == method and str(request.url).startswith(prefix):
                return response(request) if callable(response) else response
        return httpx.Response(404, json={"error": f"no stub for {request.method} {request.url}"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, url_prefix: str) -> List[httpx.Request]:
        return [r for r in self.requests if str(r.url).startswith(url_prefix)]


class StubTwilio:
    def __init__(self):
        self.sent: List[Dict[str, str]] = []
        self.calls: List[Dict[str, str]] = []

    async def send_whatsapp_message(self, creds, to_number, message):
        if not creds.configured:
            raise CredentialsNotConfigured("Twilio WhatsApp")
        self.sent.append({"to": to_number, "body": message})
        return "SM0001"

    async def place_call(self, creds, to_number, webhook_url):
        if not creds.configured or not creds.phone_number:
            raise CredentialsNotConfigured("Twilio voice")
        self.calls.append({"to": to_number, "url": webhook_url})
        return "CA0001"


@pytest.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client["agrosat_test"]
    await init_beanie(database=database, document_models=document_models())
    yield database


@pytest.fixture
async def client(db):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def vendor():
    stub = VendorStub()
    app.dependency_overrides[get_http_transport] = stub.transport
    yield stub
    app.dependency_overrides.pop(get_http_transport, None)


@pytest.fixture
def twilio():
    stub = StubTwilio()
    app.dependency_overrides[get_twilio_service] = lambda: stub
    yield stub
    app.dependency_overrides.pop(get_twilio_service, None)


@pytest.fixture
def save_credentials(client):
    async def _save(credentials):
        response = await client.post("/api/credentials", json={"credentials": credentials})
        assert response.json()["success"] is True

    return _save


@pytest.fixture
def register_farmer(client):
    async def _register(**fields):
        payload = {"phoneNumber": "+254700000001", "fullName": "Amina Otieno", "crop": "maize"}
        payload.update(fields)
        response = await client.post("/api/farmers", json=payload)
        assert response.status_code == 200, response.text
        return response.json()["farmer"]

    return _register
