import logging

import motor.motor_asyncio
import beanie
from agrosat.core.config import settings
import certifi

logger = logging.getLogger(__name__)


def document_models():
    # Import all the models here so Beanie can find them
    from agrosat.models.farmer import Farmer
    from agrosat.models.call_record import CallRecord
    from agrosat.models.satellite_insight import SatelliteInsight
    from agrosat.models.carbon_credit import CarbonCredit
    from agrosat.models.api_credentials import ApiCredentials

    return [Farmer, CallRecord, SatelliteInsight, CarbonCredit, ApiCredentials]


async def init_db(client=None):
    """
    Initializes the MongoDB database and Beanie ODM.
    Uses the certifi CA bundle when TLS is enabled (hosted clusters).
    """
    if client is None:
        if settings.MONGODB_TLS:
            client = motor.motor_asyncio.AsyncIOMotorClient(
                settings.MONGODB_URL,
                tls=True,
                tlsCAFile=certifi.where(),
            )
        else:
            client = motor.motor_asyncio.AsyncIOMotorClient(settings.MONGODB_URL)
    db = client[settings.MONGODB_DB_NAME]

    await beanie.init_beanie(database=db, document_models=document_models())
    logger.info("Database initialised: %s", settings.MONGODB_DB_NAME)
    return db
