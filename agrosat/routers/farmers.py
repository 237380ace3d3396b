from fastapi import APIRouter, Depends, Query

from agrosat.core.errors import NotFoundError
from agrosat.models.requests import FarmerIn, FarmerUpdate
from agrosat.services.farmer_service import FarmerService, get_farmer_service

router = APIRouter(prefix="/farmers", tags=["Farmers"])


@router.post("")
async def register_farmer(body: FarmerIn, farmer_service: FarmerService = Depends(get_farmer_service)):
    farmer = await farmer_service.register(body.model_dump())
    return {"success": True, "farmer": farmer.to_json()}


@router.get("")
async def list_farmers(
    limit: int = Query(100, ge=1, le=1000),
    farmer_service: FarmerService = Depends(get_farmer_service),
):
    farmers = await farmer_service.list(limit)
    return {"success": True, "farmers": [f.to_json() for f in farmers]}


@router.get("/by-phone/{phone_number}")
async def get_farmer_by_phone(phone_number: str, farmer_service: FarmerService = Depends(get_farmer_service)):
    farmer = await farmer_service.find_by_phone(phone_number)
    if not farmer:
        raise NotFoundError("Farmer not found")
    return {"success": True, "farmer": farmer.to_json()}


@router.get("/{farmer_id}")
async def get_farmer(farmer_id: str, farmer_service: FarmerService = Depends(get_farmer_service)):
    farmer = await farmer_service.get(farmer_id)
    return {"success": True, "farmer": farmer.to_json()}


@router.patch("/{farmer_id}")
async def update_farmer(
    farmer_id: str,
    body: FarmerUpdate,
    farmer_service: FarmerService = Depends(get_farmer_service),
):
    farmer = await farmer_service.update(farmer_id, body.changes())
    return {"success": True, "farmer": farmer.to_json()}


@router.delete("/{farmer_id}")
async def delete_farmer(farmer_id: str, farmer_service: FarmerService = Depends(get_farmer_service)):
    removed = await farmer_service.delete(farmer_id)
    return {"success": True, "message": "Farmer deleted", "removed": removed}
