from typing import Any, Dict
from beanie import Indexed
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agrosat.models.base import TimestampedDocument


class CredentialSection(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    enabled: bool = False


class SentinelHubCredentials(CredentialSection):
    client_id: str = ""
    client_secret: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class CarbonRegistryCredentials(CredentialSection):
    api_key: str = ""
    base_url: str = ""


class AfricasTalkingCredentials(CredentialSection):
    username: str = ""
    api_key: str = ""
    sender_id: str = ""
    sandbox_mode: bool = False

    @property
    def configured(self) -> bool:
        return bool(self.enabled and self.username and self.api_key)


class MetaWhatsAppCredentials(CredentialSection):
    access_token: str = ""
    app_id: str = ""
    phone_number_id: str = ""
    verify_token: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.enabled and self.access_token)


class TwilioCredentials(CredentialSection):
    account_sid: str = ""
    auth_token: str = ""
    phone_number: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.enabled and self.account_sid and self.auth_token)


class ElevenLabsCredentials(CredentialSection):
    api_key: str = ""
    agent_id: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.agent_id)


class MapsCredentials(CredentialSection):
    provider: str = "google"
    google_maps_api_key: str = ""
    mapbox_access_token: str = ""
    here_api_key: str = ""


class VendorCredentials(BaseModel):
    """Typed view over the credential blob. Unknown keys are kept as extras."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    sentinel_hub: SentinelHubCredentials = Field(default_factory=SentinelHubCredentials)
    carbon_credit: CarbonRegistryCredentials = Field(default_factory=CarbonRegistryCredentials)
    africas_talking: AfricasTalkingCredentials = Field(default_factory=AfricasTalkingCredentials)
    whatsapp: MetaWhatsAppCredentials = Field(default_factory=MetaWhatsAppCredentials)
    twilio_whatsapp: TwilioCredentials = Field(default_factory=TwilioCredentials)
    eleven_labs: ElevenLabsCredentials = Field(default_factory=ElevenLabsCredentials)
    maps: MapsCredentials = Field(default_factory=MapsCredentials)


class ApiCredentials(TimestampedDocument):
    key: Indexed(str, unique=True) = "main"
    credentials: Dict[str, Any] = Field(default_factory=dict)

    def typed(self) -> VendorCredentials:
        return VendorCredentials.model_validate(self.credentials or {})

    class Settings:
        name = "api_credentials"
