from typing import Any, Dict, Optional
from beanie import Indexed, PydanticObjectId
from pydantic import Field

from agrosat.models.base import TimestampedDocument


class SatelliteInsight(TimestampedDocument):
    farmer_id: Indexed(PydanticObjectId)
    image_date: str  # YYYY-MM-DD
    ndvi_score: Optional[float] = None
    soil_moisture: Optional[float] = None
    vegetation_index: Optional[float] = None
    recommendation: Optional[str] = None
    image_url: Optional[str] = None
    sentinel_data: Dict[str, Any] = Field(default_factory=dict)

    class Settings:
        name = "satellite_insights"
