import base64
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from fastapi import Depends

from agrosat.core.config import settings
from agrosat.core.errors import VendorError
from agrosat.core.http import get_http_transport
from agrosat.models.farmer import FieldLocation
from agrosat.services import insight_generator

logger = logging.getLogger(__name__)

SENTINEL_HUB_URL = "https://services.sentinel-hub.com"
STATIC_MAPS_URL = "https://maps.googleapis.com/maps/api/staticmap"
WGS84 = "http://www.opengis.net/def/crs/EPSG/0/4326"

DEFAULT_LAYERS = ["rgb", "ndvi", "moisture", "infrared"]
MARKER_COLORS = {"ndvi": "green", "moisture": "blue", "infrared": "red"}

LAYER_SCRIPTS = {
    "rgb": """//VERSION=3
function setup() {
  return { input: ["B02", "B03", "B04"], output: { bands: 3 } };
}
function evaluatePixel(sample) {
  return [sample.B04, sample.B03, sample.B02];
}
""",
    "ndvi": """//VERSION=3
function setup() {
  return { input: ["B04", "B08"], output: { bands: 3 } };
}
function evaluatePixel(sample) {
  let ndvi = (sample.B08 - sample.B04) / (sample.B08 + sample.B04);
  if (ndvi < 0) return [0.92, 0.92, 0.92];
  else if (ndvi < 0.1) return [0.8, 0.78, 0.51];
  else if (ndvi < 0.2) return [0.57, 0.75, 0.32];
  else if (ndvi < 0.3) return [0.44, 0.64, 0.25];
  else if (ndvi < 0.4) return [0.31, 0.54, 0.18];
  else if (ndvi < 0.5) return [0.19, 0.43, 0.11];
  else if (ndvi < 0.6) return [0.06, 0.33, 0.04];
  else return [0, 0.27, 0];
}
""",
    "moisture": """//VERSION=3
function setup() {
  return { input: ["B8A", "B11"], output: { bands: 3 } };
}
function evaluatePixel(sample) {
  let moisture = (sample.B8A - sample.B11) / (sample.B8A + sample.B11);
  if (moisture > 0.4) return [0, 0, 1];
  else if (moisture > 0.2) return [0, 0.5, 1];
  else if (moisture > 0) return [0, 1, 1];
  else if (moisture > -0.2) return [1, 1, 0];
  else if (moisture > -0.4) return [1, 0.5, 0];
  else return [1, 0, 0];
}
""",
    "infrared": """//VERSION=3
function setup() {
  return { input: ["B04", "B08", "B11"], output: { bands: 3 } };
}
function evaluatePixel(sample) {
  return [sample.B08, sample.B04, sample.B11];
}
""",
}

STATISTICS_SCRIPT = """//VERSION=3
function setup() {
  return {
    input: [{ bands: ["B04", "B08", "B8A", "B11", "dataMask"] }],
    output: [
      { id: "ndvi", bands: 1 },
      { id: "moisture", bands: 1 },
      { id: "dataMask", bands: 1 }
    ]
  };
}
function evaluatePixel(samples) {
  return {
    ndvi: [(samples.B08 - samples.B04) / (samples.B08 + samples.B04)],
    moisture: [(samples.B8A - samples.B11) / (samples.B8A + samples.B11)],
    dataMask: [samples.dataMask]
  };
}
"""


def static_map_images(latitude: float, longitude: float, layers: List[str], api_key: str) -> Dict[str, Dict[str, str]]:
    """Google Static Maps satellite tiles standing in for the spectral layers."""
    if not api_key:
        return {layer: {"error": "Google Maps API key not configured"} for layer in layers}

    images = {}
    for layer in layers:
        params = {
            "center": f"{latitude},{longitude}",
            "zoom": 16,
            "size": "512x512",
            "scale": 2,
            "maptype": "satellite",
            "format": "png",
            "key": api_key,
        }
        if layer != "rgb":
            params["markers"] = f"color:{MARKER_COLORS.get(layer, 'yellow')}|{latitude},{longitude}"
        images[layer] = {"url": f"{STATIC_MAPS_URL}?{urlencode(params)}"}
    return images


def _band_mean(output: Dict[str, Any]) -> Optional[float]:
    return output.get("bands", {}).get("B0", {}).get("stats", {}).get("mean")


class SentinelHubService:
    def __init__(
        self,
        client_id: str = "",
        client_secret: str = "",
        google_maps_api_key: str = "",
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.google_maps_api_key = google_maps_api_key
        self.transport = transport
        self.timeout = settings.SATELLITE_TIMEOUT

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=SENTINEL_HUB_URL, timeout=self.timeout, transport=self.transport)

    async def get_access_token(self, client: httpx.AsyncClient) -> str:
        if not self.configured:
            raise VendorError("Sentinel Hub credentials not provided")
        try:
            response = await client.post(
                "/oauth/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
            )
            response.raise_for_status()
            return response.json()["access_token"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("Sentinel Hub authentication failed: %s", e)
            raise VendorError("Failed to authenticate with Sentinel Hub")

    async def test_connection(self) -> Dict[str, Any]:
        if not self.configured:
            return {
                "success": False,
                "message": "Sentinel Hub credentials not provided. Please configure them in Settings.",
            }
        try:
            async with self._client() as client:
                await self.get_access_token(client)
        except VendorError as e:
            return {"success": False, "message": f"Failed to connect to Sentinel Hub: {e.message}"}
        return {"success": True, "message": "Successfully connected to Sentinel Hub API"}

    async def _fetch_layer(self, client: httpx.AsyncClient, token: str, layer: str, bbox: List[float], image_date: str) -> Dict[str, str]:
        script = LAYER_SCRIPTS.get(layer)
        if not script:
            return {"error": "Layer not found"}

        body = {
            "input": {
                "bounds": {"bbox": bbox, "properties": {"crs": WGS84}},
                "data": [
                    {
                        "type": "sentinel-2-l2a",
                        "dataFilter": {
                            "timeRange": {"from": f"{image_date}T00:00:00Z", "to": f"{image_date}T23:59:59Z"},
                            "maxCloudCoverage": 50,
                        },
                    }
                ],
            },
            "output": {
                "width": 512,
                "height": 512,
                "responses": [{"identifier": "default", "format": {"type": "image/png"}}],
            },
            "evalscript": script,
        }
        try:
            response = await client.post("/api/v1/process", json=body, headers={"Authorization": f"Bearer {token}"})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Sentinel Hub %s layer failed: %s", layer, e)
            return {"error": f"HTTP {e.response.status_code}: {e.response.reason_phrase}"}
        except httpx.HTTPError as e:
            logger.error("Sentinel Hub %s layer failed: %s", layer, e)
            return {"error": str(e)}
        encoded = base64.b64encode(response.content).decode("ascii")
        return {"url": f"data:image/png;base64,{encoded}"}

    async def fetch_images(
        self,
        latitude: float,
        longitude: float,
        image_date: str,
        layers: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        layers = layers or DEFAULT_LAYERS
        if not self.configured:
            images = static_map_images(latitude, longitude, layers, self.google_maps_api_key)
            return {"success": True, "images": images, "source": "google-maps-mock"}

        bbox = insight_generator.bounding_box(latitude, longitude)
        try:
            async with self._client() as client:
                token = await self.get_access_token(client)
                images = {}
                for layer in layers:
                    images[layer] = await self._fetch_layer(client, token, layer, bbox, image_date)
        except VendorError:
            logger.warning("Falling back to Google Static Maps imagery for %s,%s", latitude, longitude)
            images = static_map_images(latitude, longitude, layers, self.google_maps_api_key)
        return {"success": True, "images": images, "source": "sentinel-hub"}

    async def _statistics(self, client: httpx.AsyncClient, token: str, bbox: List[float], start_date: str, end_date: str) -> Dict[str, float]:
        body = {
            "input": {
                "bounds": {"bbox": bbox, "properties": {"crs": WGS84}},
                "data": [{"type": "sentinel-2-l2a", "dataFilter": {"maxCloudCoverage": 50}}],
            },
            "aggregation": {
                "timeRange": {"from": f"{start_date}T00:00:00Z", "to": f"{end_date}T23:59:59Z"},
                "aggregationInterval": {"of": "P1D"},
                "evalscript": STATISTICS_SCRIPT,
                "resx": 10,
                "resy": 10,
            },
        }
        response = await client.post("/api/v1/statistics", json=body, headers={"Authorization": f"Bearer {token}"})
        response.raise_for_status()

        intervals = [i for i in response.json().get("data", []) if "outputs" in i]
        if not intervals:
            raise VendorError("No cloud-free acquisitions in the requested range")
        latest = intervals[-1]
        ndvi = _band_mean(latest["outputs"].get("ndvi", {}))
        moisture = _band_mean(latest["outputs"].get("moisture", {}))
        if ndvi is None or moisture is None:
            raise VendorError("Statistics response missing band means")
        return {
            "ndvi": ndvi,
            "ndmi": moisture,
            "date": latest.get("interval", {}).get("from", end_date)[:10],
        }

    async def insights(
        self,
        farmer_id: str,
        latitude: float,
        longitude: float,
        start_date: str,
        end_date: str,
        fields: Optional[List[FieldLocation]] = None,
    ) -> Dict[str, Any]:
        """Insight card from Sentinel Hub statistics, or the seeded model when unavailable."""
        if not self.configured:
            return insight_generator.generate_insight(farmer_id, latitude, longitude, end_date, fields)

        bbox = insight_generator.bounding_box(latitude, longitude, fields)
        try:
            async with self._client() as client:
                token = await self.get_access_token(client)
                stats = await self._statistics(client, token, bbox, start_date, end_date)
        except (VendorError, httpx.HTTPError, KeyError, ValueError) as e:
            logger.warning("Sentinel Hub insights unavailable for farmer %s, using seeded model: %s", farmer_id, e)
            return insight_generator.generate_insight(farmer_id, latitude, longitude, end_date, fields)

        ndvi = max(-1.0, min(1.0, stats["ndvi"]))
        # NDMI -1..1 mapped onto a 0..100 moisture percentage
        soil_moisture = max(0.0, min(100.0, (stats["ndmi"] + 1) * 50))
        field_count = len(fields) if fields else 1
        month = int(stats["date"][5:7]) - 1
        return {
            "farmerId": farmer_id,
            "imageDate": stats["date"],
            "ndviScore": round(ndvi, 3),
            "soilMoisture": round(soil_moisture, 1),
            "vegetationIndex": round(ndvi * 100, 1),
            "recommendation": insight_generator.recommendation(ndvi, soil_moisture, latitude, month, field_count),
            "sentinelData": {
                "bbox": bbox,
                "acquisitionDate": stats["date"],
                "processingLevel": "L2A",
                "coordinates": {"latitude": latitude, "longitude": longitude},
                "fieldCount": field_count,
                "dataSource": "Sentinel Hub API",
                "apiResponse": True,
            },
        }


def get_sentinel_hub_service(transport=Depends(get_http_transport)):
    """Credentials are per request; the router fills them in."""
    return SentinelHubService(transport=transport)
