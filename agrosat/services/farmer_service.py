import logging
from typing import Any, Dict, List, Optional

from beanie import PydanticObjectId
from bson.errors import InvalidId

from agrosat.core.errors import InvalidRequest, NotFoundError
from agrosat.core.http import normalize_phone
from agrosat.models.call_record import CallRecord
from agrosat.models.carbon_credit import CarbonCredit
from agrosat.models.farmer import Farmer
from agrosat.models.satellite_insight import SatelliteInsight

logger = logging.getLogger(__name__)


def parse_object_id(value: Any, label: str = "farmer_id") -> PydanticObjectId:
    try:
        return PydanticObjectId(str(value))
    except (InvalidId, TypeError):
        raise InvalidRequest(f"Invalid {label}: {value}")


class FarmerService:

    async def get(self, farmer_id: Any) -> Farmer:
        farmer = await Farmer.get(parse_object_id(farmer_id))
        if not farmer:
            raise NotFoundError("Farmer not found")
        return farmer

    async def find(self, farmer_id: Any) -> Optional[Farmer]:
        """Like get(), but None for unknown or malformed ids."""
        try:
            return await Farmer.get(PydanticObjectId(str(farmer_id)))
        except (InvalidId, TypeError):
            return None

    async def find_by_phone(self, phone_number: str) -> Optional[Farmer]:
        phone = normalize_phone(phone_number)
        if not phone:
            return None
        return await Farmer.find_one(Farmer.phone_number == phone)

    async def list(self, limit: int = 100) -> List[Farmer]:
        return await Farmer.find_all().sort(-Farmer.created_at).limit(limit).to_list()

    async def register(self, data: Dict[str, Any]) -> Farmer:
        phone = normalize_phone(data.get("phone_number"))
        if not phone:
            raise InvalidRequest("phone_number is required")
        if await Farmer.find_one(Farmer.phone_number == phone):
            raise InvalidRequest(f"A farmer with phone number {phone} already exists")

        farmer = Farmer(**{**data, "phone_number": phone})
        await farmer.insert()
        logger.info("Registered farmer %s (%s)", farmer.id, phone)
        return farmer

    async def get_or_create(self, phone_number: str, full_name: Optional[str] = None) -> Farmer:
        if not normalize_phone(phone_number):
            raise InvalidRequest("A sender phone number is required")
        farmer = await self.find_by_phone(phone_number)
        if not farmer:
            farmer = Farmer(phone_number=normalize_phone(phone_number), full_name=full_name)
            await farmer.insert()
            logger.info("Created farmer %s from inbound message", farmer.phone_number)
        return farmer

    async def update(self, farmer_id: Any, changes: Dict[str, Any]) -> Farmer:
        farmer = await self.get(farmer_id)
        if "phone_number" in changes:
            phone = normalize_phone(changes["phone_number"])
            if not phone:
                raise InvalidRequest("phone_number cannot be empty")
            other = await Farmer.find_one(Farmer.phone_number == phone)
            if other and other.id != farmer.id:
                raise InvalidRequest(f"A farmer with phone number {phone} already exists")
            changes = {**changes, "phone_number": phone}

        for field, value in changes.items():
            setattr(farmer, field, value)
        farmer.touch()
        await farmer.save()
        return farmer

    async def delete(self, farmer_id: Any) -> Dict[str, int]:
        farmer = await self.get(farmer_id)
        removed = {
            "ivr_calls": await CallRecord.find(CallRecord.farmer_id == farmer.id).count(),
            "satellite_insights": await SatelliteInsight.find(SatelliteInsight.farmer_id == farmer.id).count(),
            "carbon_credits": await CarbonCredit.find(CarbonCredit.farmer_id == farmer.id).count(),
        }
        await CallRecord.find(CallRecord.farmer_id == farmer.id).delete()
        await SatelliteInsight.find(SatelliteInsight.farmer_id == farmer.id).delete()
        await CarbonCredit.find(CarbonCredit.farmer_id == farmer.id).delete()
        await farmer.delete()
        logger.info("Deleted farmer %s and dependents %s", farmer.id, removed)
        return removed


def get_farmer_service():
    return FarmerService()
