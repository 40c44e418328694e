from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    # Tokens are issued by the hosted auth provider; we only verify them.
    auth_jwt_secret: str = Field(..., alias="AUTH_JWT_SECRET")
    auth_jwt_algorithm: str = Field("HS256", alias="AUTH_JWT_ALGORITHM")
    auth_jwt_audience: Optional[str] = Field(None, alias="AUTH_JWT_AUDIENCE")

    default_timezone: str = Field("Asia/Kolkata", alias="DEFAULT_TIMEZONE")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # The registration screen locks the class field while editing a student.
    allow_class_change_on_edit: bool = Field(False, alias="ALLOW_CLASS_CHANGE_ON_EDIT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
