# teacher_directory/config.py

from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings, read from ``DIRECTORY_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(env_prefix="DIRECTORY_", env_file=".env", extra="ignore")

    # --- Server ---
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: List[str] = ["https://find-my-teacher.vercel.app", "http://localhost:3000"]

    # --- Database ---
    database_url: str = "sqlite+aiosqlite:///./directory.db"

    # --- Search ---
    search_limit: int = 10

    # --- Images ---
    image_width: int = 200
    image_height: int = 267
    image_fit: Literal["contain", "fill"] = "contain"
    jpeg_quality: int = 90
    max_upload_bytes: int = 20 * 1024 * 1024
    image_storage: Literal["database", "filesystem"] = "database"
    images_dir: str = "persistent_images"

    # --- Credentials ---
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    token_ttl_minutes: int = 24 * 60
    bcrypt_rounds: int = 12
    require_auth: bool = True


settings = Settings()
