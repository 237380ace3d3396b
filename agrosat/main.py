import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agrosat.core.config import settings
from agrosat.core.database import init_db
from agrosat.core.errors import AgroSatError
from agrosat.routers import (
    carbon_credits,
    connection_tests,
    credentials,
    dashboard,
    elevenlabs,
    farmers,
    sentinel_hub,
    sms,
    twilio_ivr,
    twilio_whatsapp,
    whatsapp,
)

load_dotenv()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: connect MongoDB and register document models."""
    await init_db()
    yield


app = FastAPI(title="AgroSat Admin API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(AgroSatError)
async def agrosat_error_handler(request: Request, exc: AgroSatError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"success": False, "message": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": str(exc) or "Internal server error"})


for module in (
    farmers,
    dashboard,
    credentials,
    whatsapp,
    twilio_whatsapp,
    twilio_ivr,
    sms,
    elevenlabs,
    sentinel_hub,
    carbon_credits,
    connection_tests,
):
    app.include_router(module.router, prefix="/api")


@app.get("/")
def read_root():
    return {"message": "Welcome to AgroSat Admin API"}
