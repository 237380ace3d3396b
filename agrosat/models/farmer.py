from typing import Optional, List
from beanie import Indexed
from pydantic import BaseModel, Field

from agrosat.models.base import TimestampedDocument


class CropDetail(BaseModel):
    crop_type: str
    hectareage: float = 0.0


class FieldLocation(BaseModel):
    field_name: str
    latitude: float
    longitude: float
    bounding_box: Optional[List[List[float]]] = None  # [[lng, lat], ...]


class Farmer(TimestampedDocument):
    phone_number: Indexed(str, unique=True)
    full_name: Optional[str] = None
    location_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    preferred_language: str = "English"
    crop: Optional[str] = None
    crop_details: List[CropDetail] = Field(default_factory=list)
    field_locations: List[FieldLocation] = Field(default_factory=list)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    class Settings:
        name = "farmers"
        validate_on_save = True
