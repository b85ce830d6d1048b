from dotenv import load_dotenv # type: ignore
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Process-wide settings. Each field reads the env var of the same name, upper-cased."""

    model_config = SettingsConfigDict(extra="ignore")

    mongodb_url: str = "mongodb://localhost:27017"
    database_name: str = "Proctoring-Backend"
    store_backend: str = "memory"
    # Comma separated in the environment
    allowed_origins: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["http://localhost:3000"])
    frontend_url: str = "http://localhost:3000"
    port: int = 8000
    log_level: str = "INFO"

    # Detection cadence and refractory window (milliseconds)
    detection_interval_ms: int = 2000
    dedup_window_ms: int = 5000

    # Debounce thresholds (seconds of continuous anomaly)
    face_absent_threshold_s: float = 10.0
    focus_lost_threshold_s: float = 5.0

    # Object classifier
    object_model_path: str = "weights/proctor_objects.pt"
    object_fallback_model: str = "yolov8n.pt"
    object_confidence: float = 0.5

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("store_backend")
    @classmethod
    def _lower_backend(cls, value: str) -> str:
        return value.lower()


def load_settings() -> Settings:
    return Settings()
