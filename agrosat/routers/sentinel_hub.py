import logging

from fastapi import APIRouter, Depends, Query

from agrosat.core.errors import InvalidRequest
from agrosat.models.api_credentials import VendorCredentials
from agrosat.models.requests import SentinelHubRequest
from agrosat.models.satellite_insight import SatelliteInsight
from agrosat.services import insight_generator
from agrosat.services.credentials_service import CredentialsService, get_credentials_service
from agrosat.services.farmer_service import FarmerService, get_farmer_service
from agrosat.services.sentinel_hub_service import SentinelHubService, get_sentinel_hub_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sentinel-hub", tags=["Satellite"])


async def resolve_credentials(body: SentinelHubRequest, credentials_service: CredentialsService) -> VendorCredentials:
    """Credentials sent with the request win over the stored ones."""
    if body.credentials:
        return VendorCredentials.model_validate(body.credentials)
    return await credentials_service.get()


def _has_coordinates(body: SentinelHubRequest) -> bool:
    return body.latitude is not None and body.longitude is not None


@router.post("")
async def sentinel_hub(
    body: SentinelHubRequest,
    sentinel_hub_service: SentinelHubService = Depends(get_sentinel_hub_service),
    credentials_service: CredentialsService = Depends(get_credentials_service),
    farmer_service: FarmerService = Depends(get_farmer_service),
):
    creds = await resolve_credentials(body, credentials_service)
    sentinel_hub_service.client_id = creds.sentinel_hub.client_id
    sentinel_hub_service.client_secret = creds.sentinel_hub.client_secret
    sentinel_hub_service.google_maps_api_key = creds.maps.google_maps_api_key

    if body.action == "test-connection":
        return await sentinel_hub_service.test_connection()

    if body.action == "fetch-images":
        if not body.farmer_id or not _has_coordinates(body) or not body.image_date:
            raise InvalidRequest("Missing required parameters for image fetching")
        return await sentinel_hub_service.fetch_images(
            body.latitude, body.longitude, body.image_date.isoformat(), body.layers
        )

    if not body.farmer_id or not _has_coordinates(body) or not body.start_date or not body.end_date:
        raise InvalidRequest("Missing required parameters")

    insight = await sentinel_hub_service.insights(
        body.farmer_id,
        body.latitude,
        body.longitude,
        body.start_date.isoformat(),
        body.end_date.isoformat(),
        body.field_boundaries,
    )

    farmer = await farmer_service.find(body.farmer_id)
    if farmer:
        record = SatelliteInsight(
            farmer_id=farmer.id,
            image_date=insight["imageDate"],
            ndvi_score=insight["ndviScore"],
            soil_moisture=insight["soilMoisture"],
            vegetation_index=insight["vegetationIndex"],
            recommendation=insight["recommendation"],
            image_url=insight.get("imageUrl"),
            sentinel_data=insight["sentinelData"],
        )
        await record.insert()
        insight["id"] = str(record.id)
    else:
        logger.info("Insight for unknown farmer %s not persisted", body.farmer_id)
    return insight


@router.get("/history")
async def history(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    months: int = Query(6, ge=1, le=36),
):
    return {"success": True, "history": insight_generator.history(latitude, longitude, months)}
