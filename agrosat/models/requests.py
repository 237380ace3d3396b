from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import Field

from agrosat.models.base import CamelModel
from agrosat.models.carbon_credit import VerificationStatus
from agrosat.models.farmer import CropDetail, FieldLocation


class FarmerIn(CamelModel):
    phone_number: str
    full_name: Optional[str] = None
    location_name: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    preferred_language: str = "English"
    crop: Optional[str] = None
    crop_details: List[CropDetail] = Field(default_factory=list)
    field_locations: List[FieldLocation] = Field(default_factory=list)


class FarmerUpdate(CamelModel):
    phone_number: Optional[str] = None
    full_name: Optional[str] = None
    location_name: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    preferred_language: Optional[str] = None
    crop: Optional[str] = None
    crop_details: Optional[List[CropDetail]] = None
    field_locations: Optional[List[FieldLocation]] = None

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client sent, nested models kept as models."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class SendMessageRequest(CamelModel):
    action: Optional[str] = None
    farmer_id: Optional[str] = None
    phone_number: Optional[str] = None
    message: Optional[str] = None


class InitiateCallRequest(CamelModel):
    action: str
    farmer_id: Optional[str] = None
    phone_number: Optional[str] = None
    farmer_name: Optional[str] = None
    language: Optional[str] = "English"


class SentinelHubRequest(CamelModel):
    action: Optional[str] = None
    farmer_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_date: Optional[date] = None
    layers: Optional[List[str]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    field_boundaries: Optional[List[FieldLocation]] = None
    credentials: Optional[Dict[str, Any]] = None


class CarbonCreditRequest(CamelModel):
    farmer_id: str
    practices: List[str] = Field(default_factory=list)
    acreage: float = Field(ge=0)
    crop_type: Optional[str] = "mixed"


class VerificationUpdate(CamelModel):
    status: VerificationStatus
    verified_credits: Optional[float] = Field(default=None, ge=0)


class SentinelHubTest(CamelModel):
    client_id: str = ""
    client_secret: str = ""


class TwilioTest(CamelModel):
    account_sid: str = ""
    auth_token: str = ""
    phone_number: Optional[str] = None


class WhatsAppTest(CamelModel):
    access_token: str = ""
    app_id: str = ""
    phone_number_id: str = ""


class ElevenLabsTest(CamelModel):
    api_key: str = ""
    agent_id: str = ""


class AfricasTalkingTest(CamelModel):
    username: str = ""
    api_key: str = ""
    sender_id: str = ""
    sandbox_mode: bool = False


class MapsTest(CamelModel):
    provider: str = ""
    google_maps_api_key: str = ""
    mapbox_access_token: str = ""
    here_api_key: str = ""


class CarbonRegistryTest(CamelModel):
    api_key: str = ""
    base_url: str = ""
