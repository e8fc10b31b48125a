"""
Runtime configuration for the discovery engine
"""
import os
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SCORING_CRITERIA = ("age", "height", "religion", "location", "education", "lifestyle")


class Settings(BaseSettings):
    """Tunables loaded once per process from DISCOVERY_* environment variables"""

    # criterion -> weight
    scoring_weights: Dict[str, int] = Field(
        default_factory=lambda: {
            "age": 15,
            "height": 10,
            "religion": 20,
            "location": 15,
            "education": 15,
            "lifestyle": 15,
        }
    )
    location_match_tier: str = "state"

    # categories
    new_window_days: int = Field(default=7, ge=1)
    near_radius_km: float = Field(default=50.0, gt=0)
    online_window_minutes: int = Field(default=5, ge=1)

    # pagination
    default_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=50, ge=1)

    # photos
    blurred_photo_url: str = "/assets/images/blurred-photo.jpg"
    max_album_photos: int = Field(default=5, ge=0)

    # concurrency
    max_workers: Optional[int] = Field(default=None, ge=1)

    # auth
    jwt_secret: str = "change-me-discovery-signing-key-0000"
    jwt_algorithm: str = "HS256"

    log_level: str = "INFO"
    event_queue_size: int = Field(default=1000, ge=1)

    model_config = SettingsConfigDict(env_prefix="DISCOVERY_", env_file=".env", extra="ignore")

    @field_validator("scoring_weights")
    @classmethod
    def check_scoring_weights(cls, v: Dict[str, int]) -> Dict[str, int]:
        missing = [name for name in SCORING_CRITERIA if name not in v]
        if missing:
            raise ValueError(f"scoring_weights is missing criteria: {', '.join(missing)}")
        unknown = [name for name in v if name not in SCORING_CRITERIA]
        if unknown:
            raise ValueError(f"scoring_weights has unknown criteria: {', '.join(unknown)}")
        if any(weight <= 0 for weight in v.values()):
            raise ValueError("scoring weights must be positive")
        return v

    @field_validator("location_match_tier")
    @classmethod
    def check_location_tier(cls, v: str) -> str:
        v = v.lower()
        if v not in ("city", "state", "country"):
            raise ValueError("location_match_tier must be one of city, state, country")
        return v

    @property
    def worker_limit(self) -> int:
        return self.max_workers or os.cpu_count() or 1


settings = Settings()
