import logging
from typing import List, Optional

from beanie import PydanticObjectId

from agrosat.models.call_record import CallRecord, CallStatus, CallType

logger = logging.getLogger(__name__)


class CallLogService:
    """Append-only log of IVR, WhatsApp, SMS and voice-agent interactions."""

    async def log(
        self,
        farmer_id: PydanticObjectId,
        call_status: CallStatus,
        call_type: CallType,
        transcript: Optional[str] = None,
        **fields,
    ) -> CallRecord:
        record = CallRecord(
            farmer_id=farmer_id,
            call_status=call_status,
            call_type=call_type,
            transcript=transcript,
            **fields,
        )
        await record.insert()
        logger.debug("Logged %s/%s for farmer %s", call_type, call_status, farmer_id)
        return record

    async def latest(self, farmer_id: PydanticObjectId, call_type: CallType) -> Optional[CallRecord]:
        return await CallRecord.find(
            CallRecord.farmer_id == farmer_id,
            CallRecord.call_type == call_type,
        ).sort(-CallRecord.created_at).first_or_none()

    async def list(self, farmer_id: Optional[PydanticObjectId] = None, limit: int = 100) -> List[CallRecord]:
        query = CallRecord.find(CallRecord.farmer_id == farmer_id) if farmer_id else CallRecord.find_all()
        return await query.sort(-CallRecord.call_time).limit(limit).to_list()


def get_call_log_service():
    return CallLogService()
