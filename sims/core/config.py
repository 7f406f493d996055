from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Required for BACKEND=database and the seed script
    database_url: Optional[str] = Field(None, alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # database: accounts and profile tables live in DATABASE_URL
    # supabase: hosted Auth + PostgREST, called with the service-role key
    backend: Literal["database", "supabase"] = Field("database", alias="BACKEND")
    supabase_url: Optional[str] = Field(None, alias="SUPABASE_URL")
    supabase_service_role_key: Optional[str] = Field(None, alias="SUPABASE_SERVICE_ROLE_KEY")
    supabase_timeout_seconds: float = Field(10.0, alias="SUPABASE_TIMEOUT_SECONDS")

    bulk_import_max_users: int = Field(50, alias="BULK_IMPORT_MAX_USERS")
    password_min_length: int = Field(6, alias="PASSWORD_MIN_LENGTH")

    admin_email: Optional[str] = Field(None, alias="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(None, alias="ADMIN_PASSWORD")
    admin_name: str = Field("Administrator", alias="ADMIN_NAME")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
