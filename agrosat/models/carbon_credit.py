from enum import Enum
from typing import Optional
from beanie import Indexed, PydanticObjectId

from agrosat.models.base import TimestampedDocument


class VerificationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class CarbonCredit(TimestampedDocument):
    farmer_id: Indexed(PydanticObjectId)
    opt_in_date: str  # YYYY-MM-DD
    practices_reported: Optional[str] = None
    verification_status: VerificationStatus = VerificationStatus.PENDING
    estimated_credits: float = 0.0
    verified_credits: float = 0.0
    credit_price: float = 0.0
    total_value: float = 0.0
    registry_id: Optional[str] = None

    class Settings:
        name = "carbon_credits"
        validate_on_save = True
