from typing import Any, Dict, Optional

import httpx
from fastapi import Request

from agrosat.core.errors import InvalidRequest


def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    """
    Transport handed to every vendor HTTP service.
    None means httpx's default network transport; tests override this
    dependency with an httpx.MockTransport.
    """
    return None


def normalize_phone(phone: Optional[str]) -> str:
    """
    'whatsapp:+254 712-345' -> '+254712345', '254712345' -> '+254712345'.
    Local numbers with a trunk prefix ('0700 000 001') carry no country
    code and are kept as bare digits.
    """
    if not phone:
        return ""
    phone = phone.replace("whatsapp:", "")
    digits = "".join(ch for ch in phone if ch.isdigit())
    if not digits:
        return ""
    if digits.startswith("0") and not phone.strip().startswith("+"):
        return digits
    return f"+{digits}"


async def read_payload(request: Request) -> Dict[str, Any]:
    """Webhook body as a dict, from JSON or a url-encoded form."""
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            payload = await request.json()
        except ValueError:
            raise InvalidRequest("Malformed JSON body")
        if not isinstance(payload, dict):
            raise InvalidRequest("JSON body must be an object")
        return payload
    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        return dict(form)
    raise InvalidRequest("Unsupported content type")
