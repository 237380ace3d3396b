from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "agrosat"
    MONGODB_TLS: bool = False
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    CREDENTIALS_KEY: str = "main"
    HTTP_TIMEOUT: float = 30.0
    SATELLITE_TIMEOUT: float = 90.0
    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    SUPPORT_PHONE_NUMBER: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
