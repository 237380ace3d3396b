"""
Seeded satellite insight generator.

Used when Sentinel Hub is not configured or fails. Values depend only on
(farmer_id, date, coordinates, fields) so the same card renders the same
numbers on every reload.
"""

import random
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from agrosat.models.farmer import FieldLocation

FIELD_BUFFER = 0.002
BBOX_PADDING = 0.001
POINT_HALF_WIDTH = 0.005


def climate_zone(latitude: float) -> str:
    lat = abs(latitude)
    if lat <= 23.5:
        return "Tropical"
    if lat <= 35:
        return "Subtropical"
    if lat <= 60:
        return "Temperate"
    return "Polar"


CLIMATE_FACTORS = {"Tropical": 0.9, "Subtropical": 0.8, "Temperate": 0.7, "Polar": 0.4}


def season(month: int, latitude: float) -> str:
    """month is 0-based (January == 0)."""
    if latitude >= 0:
        if 3 <= month <= 5:
            return "Spring"
        if 6 <= month <= 8:
            return "Summer"
        if 9 <= month <= 11:
            return "Fall"
        return "Winter"
    if month >= 9 or month <= 2:
        return "Summer"
    if 3 <= month <= 5:
        return "Fall"
    return "Winter"


def seasonal_factor(month: int, latitude: float) -> float:
    if latitude >= 0:
        growing = 3 <= month <= 8
    else:
        growing = month >= 9 or month <= 2
    return 0.8 if growing else 0.5


def bounding_box(latitude: float, longitude: float, fields: Optional[List[FieldLocation]] = None) -> List[float]:
    """[min_lng, min_lat, max_lng, max_lat]"""
    if not fields:
        return [
            longitude - POINT_HALF_WIDTH,
            latitude - POINT_HALF_WIDTH,
            longitude + POINT_HALF_WIDTH,
            latitude + POINT_HALF_WIDTH,
        ]

    lats, lngs = [], []
    for field in fields:
        if field.bounding_box:
            for lng, lat in field.bounding_box:
                lats.append(lat)
                lngs.append(lng)
        else:
            lats.extend([field.latitude - FIELD_BUFFER, field.latitude + FIELD_BUFFER])
            lngs.extend([field.longitude - FIELD_BUFFER, field.longitude + FIELD_BUFFER])

    return [
        min(lngs) - BBOX_PADDING,
        min(lats) - BBOX_PADDING,
        max(lngs) + BBOX_PADDING,
        max(lats) + BBOX_PADDING,
    ]


def recommendation(ndvi: float, soil_moisture: float, latitude: float, month: int, field_count: int = 1) -> str:
    zone = climate_zone(latitude).lower()
    current_season = season(month, latitude).lower()
    multi = field_count > 1

    parts = []
    if multi:
        parts.append(f"Multi-field analysis ({field_count} fields mapped): ")

    if ndvi > 0.7 and soil_moisture > 60:
        parts.append(
            f"Excellent crop health detected across {'all fields' if multi else 'the field'} "
            f"in {zone} {current_season} conditions. "
        )
        parts.append(
            "Continue current field rotation practices and monitor for optimal harvest timing across fields. "
            if multi
            else "Continue current practices and consider harvest timing optimization. "
        )
        parts.append("Field-specific monitoring recommended for the next 2-3 weeks.")
    elif ndvi > 0.6 and soil_moisture > 50:
        parts.append(f"Good vegetation health observed for {current_season} season. ")
        parts.append(
            "Maintain current irrigation schedule and consider field-specific fertilization "
            "based on individual field performance. "
            if multi
            else "Maintain current irrigation schedule and monitor crop development. "
        )
        parts.append("Consider precision agriculture techniques for optimization.")
    elif ndvi > 0.4 and soil_moisture > 40:
        parts.append(f"Moderate vegetation health in {zone} zone. ")
        parts.append(
            "Field-specific analysis shows variation, prioritize irrigation and fertilization "
            "for underperforming fields. "
            if multi
            else "Consider increasing irrigation frequency and check for nutrient deficiencies. "
        )
        parts.append("Soil testing recommended for targeted interventions.")
    elif ndvi > 0.3 and soil_moisture < 30:
        parts.append(f"Low soil moisture detected during {current_season} season. ")
        parts.append(
            "Immediate field-specific irrigation recommended, prioritize most critical fields first. "
            if multi
            else "Immediate irrigation recommended to prevent crop stress. "
        )
        parts.append("Consider drought-resistant varieties for future planting cycles.")
    elif ndvi < 0.3:
        parts.append(f"Poor vegetation index detected in {zone} conditions. ")
        parts.append(
            "Urgent field-by-field assessment required, investigate potential causes across all mapped areas. "
            if multi
            else "Investigate potential causes: pests, disease, or severe nutrient deficiency. "
        )
        parts.append("Consult agricultural extension services for immediate intervention.")
    else:
        parts.append(f"Mixed conditions detected for {current_season} {zone} farming. ")
        parts.append(
            "Field-specific interventions recommended based on individual field performance data. "
            if multi
            else "Consider targeted interventions based on field observations. "
        )
        parts.append("Enhanced monitoring recommended over the next 1-2 weeks.")

    if multi:
        parts.append(
            " Field management advantage: Multiple mapped fields enable precision agriculture "
            "and optimized resource allocation."
        )
    if zone == "tropical" and soil_moisture > 70:
        parts.append(" Monitor for fungal diseases in high humidity conditions.")

    return "".join(parts)


def _month_index(image_date: str) -> int:
    return datetime.strptime(image_date[:10], "%Y-%m-%d").month - 1


def generate_insight(
    farmer_id: str,
    latitude: float,
    longitude: float,
    image_date: str,
    fields: Optional[List[FieldLocation]] = None,
) -> Dict[str, Any]:
    """
    Deterministic insight for a farmer and date.
    Returns the insight card in the same camelCase shape the Sentinel Hub
    path returns.
    """
    rng = random.Random(f"{farmer_id}{image_date}")
    field_count = len(fields) if fields else 1
    multi = field_count > 1
    month = _month_index(image_date)

    latitude_factor = max(0.3, 1 - abs(latitude) / 90)
    zone = climate_zone(latitude)
    base_ndvi = latitude_factor * seasonal_factor(month, latitude) * CLIMATE_FACTORS[zone] * (1.1 if multi else 1.0)
    base_ndvi += 0.05 if multi else 0.0
    ndvi = max(0.1, min(0.9, base_ndvi + (rng.random() - 0.5) * 0.15))

    spread = 15 if multi else 20
    soil_moisture = max(15.0, min(85.0, ndvi * 55 + 25 + (rng.random() - 0.5) * spread))
    vegetation_index = ndvi * 95 + (5 if multi else 0)

    return {
        "farmerId": farmer_id,
        "imageDate": image_date,
        "ndviScore": round(ndvi, 3),
        "soilMoisture": round(soil_moisture, 1),
        "vegetationIndex": round(vegetation_index, 1),
        "recommendation": recommendation(ndvi, soil_moisture, latitude, month, field_count),
        "sentinelData": {
            "bbox": bounding_box(latitude, longitude, fields),
            "acquisitionDate": image_date,
            "cloudCoverage": round(rng.random() * 25),
            "processingLevel": "L2A",
            "coordinates": {"latitude": latitude, "longitude": longitude},
            "season": season(month, latitude),
            "climateZone": zone,
            "dataSource": "Seeded Model",
            "resolution": "10m",
            "bands": ["B04", "B08", "B11", "B12"],
            "qualityScore": round(0.75 + rng.random() * 0.25, 2),
            "fieldCount": field_count,
            "enhancedPrecision": multi,
            "managementScore": "Advanced" if multi else "Standard",
            "apiResponse": False,
        },
    }


def _months_back(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    # clamp the day for short months
    for dd in (day.day, 30, 29, 28):
        try:
            return date(year, month + 1, dd)
        except ValueError:
            continue
    raise ValueError(f"Cannot step {months} months back from {day}")


def history(
    latitude: float,
    longitude: float,
    months: int = 6,
    fields: Optional[List[FieldLocation]] = None,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Monthly {date, ndvi, moisture} points, oldest first."""
    today = today or date.today()
    points = []
    for i in range(months):
        day = _months_back(today, i).isoformat()
        insight = generate_insight("historical", latitude, longitude, day, fields)
        points.append({"date": day, "ndvi": insight["ndviScore"], "moisture": insight["soilMoisture"]})
    points.reverse()
    return points
