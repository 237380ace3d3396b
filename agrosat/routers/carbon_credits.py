from typing import Optional

from fastapi import APIRouter, Depends, Query

from agrosat.core.errors import InvalidRequest
from agrosat.models.carbon_credit import VerificationStatus
from agrosat.models.requests import CarbonCreditRequest, VerificationUpdate
from agrosat.services.carbon_credit_service import (
    CREDIT_RATES,
    ELIGIBLE_PRACTICES,
    CarbonCreditService,
    get_carbon_credit_service,
)
from agrosat.services.farmer_service import FarmerService, get_farmer_service, parse_object_id

router = APIRouter(prefix="/carbon-credits", tags=["Carbon Credits"])


@router.post("")
async def submit_practices(
    body: CarbonCreditRequest,
    carbon_service: CarbonCreditService = Depends(get_carbon_credit_service),
    farmer_service: FarmerService = Depends(get_farmer_service),
):
    farmer = await farmer_service.get(body.farmer_id)
    result = await carbon_service.submit(farmer, body.practices, body.acreage, body.crop_type)
    return {"success": True, **result}


@router.get("")
async def carbon_status(
    farmer_id: Optional[str] = None,
    carbon_service: CarbonCreditService = Depends(get_carbon_credit_service),
):
    if not farmer_id:
        raise InvalidRequest("farmer_id is required")
    return {"success": True, **await carbon_service.status(parse_object_id(farmer_id))}


@router.get("/practices")
async def eligible_practices():
    return {
        "success": True,
        "practices": [{**p, "creditsPerAcre": CREDIT_RATES[p["id"]]} for p in ELIGIBLE_PRACTICES],
    }


@router.get("/ledger")
async def ledger(
    status: Optional[VerificationStatus] = None,
    limit: int = Query(200, ge=1, le=1000),
    carbon_service: CarbonCreditService = Depends(get_carbon_credit_service),
):
    credits = await carbon_service.ledger(status, limit)
    return {"success": True, "carbonCredits": [c.to_json() for c in credits]}


@router.patch("/{credit_id}/verification")
async def update_verification(
    credit_id: str,
    body: VerificationUpdate,
    carbon_service: CarbonCreditService = Depends(get_carbon_credit_service),
):
    credit = await carbon_service.set_verification(
        parse_object_id(credit_id, "carbon credit id"),
        body.status,
        body.verified_credits,
    )
    return {"success": True, "carbonCredit": credit.to_json()}
