import os
from typing import List

from pydantic import BaseModel, Field
from fastapi import Request


class Settings(BaseModel):
    database_url: str = Field("mongodb://localhost:27017/roombuddy", description="MongoDB connection string")
    database_name: str = Field("roombuddy", description="Database holding users, hostels and roommates")
    secret_key: str = Field("defaultsecret", description="JWT signing secret")
    algorithm: str = "HS256"
    token_expire_days: int = Field(30, ge=1)
    port: int = 8000
    production: bool = Field(False, description="Serve the client views instead of the API placeholder")
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


def load_settings() -> Settings:
    """Read the process environment once at startup."""
    env = os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "development"
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        database_url=os.getenv("DATABASE_URL") or os.getenv("MONGO_URI") or "mongodb://localhost:27017/roombuddy",
        database_name=os.getenv("DATABASE_NAME", "roombuddy"),
        secret_key=os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET") or "defaultsecret",
        port=int(os.getenv("PORT", 8000)),
        production=env.lower() == "production",
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
