import logging
from typing import Any, Dict

import httpx
from fastapi import Depends

from agrosat.core.config import settings
from agrosat.core.http import get_http_transport

logger = logging.getLogger(__name__)

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
MAPBOX_GEOCODE_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places/Los%20Angeles.json"
HERE_GEOCODE_URL = "https://geocode.search.hereapi.com/v1/geocode"


class MapsService:
    """Connection checks for the map providers the dashboard can render with."""

    def __init__(self, transport: httpx.AsyncBaseTransport = None):
        self.transport = transport
        self.timeout = settings.HTTP_TIMEOUT

    async def _get(self, url: str, params: Dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.get(url, params=params)

    async def test_google(self, api_key: str) -> Dict[str, Any]:
        try:
            response = await self._get(
                GOOGLE_GEOCODE_URL,
                {"address": "1600 Amphitheatre Parkway, Mountain View, CA", "key": api_key},
            )
        except httpx.HTTPError as e:
            return {"success": False, "message": f"Google Maps test failed: {e}"}
        if response.status_code != 200:
            return {"success": False, "message": f"Google Maps API test failed: {response.status_code}"}

        data = response.json()
        if data.get("status") == "REQUEST_DENIED":
            return {"success": False, "message": f"Google Maps API access denied: {data.get('error_message') or 'Invalid API key'}"}
        if data.get("status") == "OK" and data.get("results"):
            return {"success": True, "message": "Successfully connected to Google Maps API"}
        return {"success": False, "message": f"Google Maps API test failed: {data.get('status')}"}

    async def test_mapbox(self, access_token: str) -> Dict[str, Any]:
        try:
            response = await self._get(MAPBOX_GEOCODE_URL, {"access_token": access_token})
        except httpx.HTTPError as e:
            return {"success": False, "message": f"Mapbox test failed: {e}"}
        if response.status_code != 200:
            return {"success": False, "message": f"Mapbox API test failed: {response.status_code}"}

        data = response.json()
        if data.get("message"):
            return {"success": False, "message": f"Mapbox API error: {data['message']}"}
        if data.get("features"):
            return {"success": True, "message": "Successfully connected to Mapbox API"}
        return {"success": False, "message": "Mapbox API test failed: No results returned"}

    async def test_here(self, api_key: str) -> Dict[str, Any]:
        try:
            response = await self._get(HERE_GEOCODE_URL, {"q": "Berlin", "apikey": api_key})
        except httpx.HTTPError as e:
            return {"success": False, "message": f"HERE Maps test failed: {e}"}
        if response.status_code != 200:
            return {"success": False, "message": f"HERE Maps API test failed: {response.status_code}"}

        data = response.json()
        if data.get("error"):
            return {"success": False, "message": f"HERE Maps API error: {data['error'].get('title') or 'Invalid API key'}"}
        if data.get("items"):
            return {"success": True, "message": "Successfully connected to HERE Maps API"}
        return {"success": False, "message": "HERE Maps API test failed: No results returned"}

    async def test_connection(self, provider: str, google_maps_api_key: str = "", mapbox_access_token: str = "", here_api_key: str = "") -> Dict[str, Any]:
        if not provider:
            return {"success": False, "message": "Map provider is required"}
        if provider == "google":
            if not google_maps_api_key:
                return {"success": False, "message": "Google Maps API Key is required"}
            return await self.test_google(google_maps_api_key)
        if provider == "mapbox":
            if not mapbox_access_token:
                return {"success": False, "message": "Mapbox Access Token is required"}
            return await self.test_mapbox(mapbox_access_token)
        if provider == "here":
            if not here_api_key:
                return {"success": False, "message": "HERE API Key is required"}
            return await self.test_here(here_api_key)
        return {"success": False, "message": "Unknown map provider"}


def get_maps_service(transport=Depends(get_http_transport)):
    return MapsService(transport=transport)
