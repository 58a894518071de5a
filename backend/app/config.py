# backend configuration
# loads env vars for mongodb, jwt, cors, and the offline client mirror

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent.parent / ".env")


class Settings(BaseSettings):
    # mongodb
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "pathify_db")

    # jwt auth
    JWT_SECRET: str = os.getenv("JWT_SECRET", "pathify-dev-secret-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:8080")

    # psychologist defaults for new registrations
    DEFAULT_PSYCHOLOGIST_RATING: float = 4.5

    # client sync: api location and local mirror file
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:3000")
    MIRROR_PATH: str = os.getenv("MIRROR_PATH", str(Path.home() / ".pathify" / "mirror.json"))
    CLIENT_TIMEOUT_SECONDS: float = 10.0

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
