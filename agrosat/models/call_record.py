from datetime import datetime
from enum import Enum
from typing import Optional
from beanie import Indexed, PydanticObjectId
from pydantic import Field

from agrosat.models.base import TimestampedDocument, utcnow


class CallType(str, Enum):
    TRADITIONAL_IVR = "traditional_ivr"
    ELEVENLABS_VOICE = "elevenlabs_voice"
    WHATSAPP = "whatsapp"
    WHATSAPP_SENT = "whatsapp_sent"
    WHATSAPP_DELIVERED = "whatsapp_delivered"
    WHATSAPP_READ = "whatsapp_read"
    SMS = "sms"


class CallStatus(str, Enum):
    INITIATED = "initiated"
    DEMO_INITIATED = "demo_initiated"
    COMPLETED = "completed"
    TWILIO_WHATSAPP_SENT = "twilio_whatsapp_sent"
    TWILIO_WHATSAPP_RECEIVED = "twilio_whatsapp_received"
    META_WHATSAPP_SENT = "meta_whatsapp_sent"
    META_WHATSAPP_RECEIVED = "meta_whatsapp_received"
    SMS_SENT = "sms_sent"
    ELEVENLABS_INITIATED = "elevenlabs_initiated"
    ELEVENLABS_IN_PROGRESS = "elevenlabs_in_progress"
    ELEVENLABS_PROCESSING = "elevenlabs_processing"
    ELEVENLABS_DONE = "elevenlabs_done"
    ELEVENLABS_COMPLETED = "elevenlabs_completed"
    ELEVENLABS_FAILED = "elevenlabs_failed"


class CallRecord(TimestampedDocument):
    farmer_id: Indexed(PydanticObjectId)
    call_time: datetime = Field(default_factory=utcnow)
    crop_selected: Optional[str] = None
    crop_condition: Optional[int] = Field(default=None, ge=1, le=3)  # 1 Good, 2 Fair, 3 Poor
    rain_recent: bool = False
    opted_in_carbon: bool = False
    transcript: Optional[str] = None
    call_duration: int = 0
    call_status: CallStatus = CallStatus.COMPLETED
    call_type: CallType = CallType.TRADITIONAL_IVR

    class Settings:
        name = "ivr_calls"
        validate_on_save = True
