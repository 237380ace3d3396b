from typing import Optional

from fastapi import APIRouter, Depends, Query

from agrosat.models.call_record import CallRecord
from agrosat.models.carbon_credit import CarbonCredit
from agrosat.models.farmer import Farmer
from agrosat.models.satellite_insight import SatelliteInsight
from agrosat.services.call_log_service import CallLogService, get_call_log_service
from agrosat.services.farmer_service import parse_object_id

router = APIRouter(tags=["Dashboard"])


@router.get("/ivr-calls")
async def list_calls(
    farmer_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    call_log: CallLogService = Depends(get_call_log_service),
):
    calls = await call_log.list(parse_object_id(farmer_id) if farmer_id else None, limit)
    return {"success": True, "calls": [c.to_json() for c in calls]}


@router.get("/satellite-insights")
async def list_insights(
    farmer_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
):
    if farmer_id:
        query = SatelliteInsight.find(SatelliteInsight.farmer_id == parse_object_id(farmer_id))
    else:
        query = SatelliteInsight.find_all()
    insights = await query.sort(-SatelliteInsight.created_at).limit(limit).to_list()
    return {"success": True, "insights": [i.to_json() for i in insights]}


@router.get("/dashboard/stats")
async def dashboard_stats():
    return {
        "totalFarmers": await Farmer.find_all().count(),
        "totalIVRCalls": await CallRecord.find_all().count(),
        "totalSatelliteInsights": await SatelliteInsight.find_all().count(),
        "totalCarbonOptIns": await CarbonCredit.find_all().count(),
    }
