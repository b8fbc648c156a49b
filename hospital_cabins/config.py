# hospital_cabins/config.py
import logging

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./hospital_cabins.db"
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: float = 60  # supports decimal durations

    # IANA zone used for date-only "today" comparisons
    TIMEZONE: str = "UTC"

    BOOKING_NUMBER_PREFIX: str = "CB"
    DISABLED_DATES_HORIZON_DAYS: int = 365

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"  # comma separated

    class Config:
        env_file = ".env"

settings = Settings()


def configure_logging(level: str = None):
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
