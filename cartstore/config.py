from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings; every field can be overridden with a ``CARTSTORE_`` env var."""

    model_config = SettingsConfigDict(env_prefix="CARTSTORE_", env_file=".env", extra="ignore")

    backend: Literal["file", "memory"] = "file"
    data_dir: Path = Path("data")
    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    event_sink: Literal["log", "none"] = "log"
