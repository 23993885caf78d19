"""
PlaceMarker Core: Application Configuration
===========================================

What:  Centralized configuration using Pydantic Settings.
How:   Values come from environment variables (or a .env file), are validated
       on load, and exposed through the `settings` singleton.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every field has a development default. Remote integrations (Firebase,
    Google Places) stay disabled until their keys are provided.
    """

    # ── Local Durable Store ───────────────────────────────────────────────
    # Async SQLite file holding marked places and the device identity.
    database_url: str = Field(
        default="sqlite+aiosqlite:///./placemarker.db",
        description="Async SQLAlchemy URL of the local durable store",
    )

    # ── Remote Notes (Firebase) ───────────────────────────────────────────
    firebase_api_key: str = Field(
        default="",
        description="Web API key used for anonymous sign-in and token refresh",
    )
    # Empty URL switches the notes backend to the in-process store.
    firebase_database_url: str = Field(
        default="",
        description="Realtime Database root, e.g. https://<project>.firebaseio.com",
    )
    notes_collection: str = Field(default="placeNotes")
    identity_toolkit_url: str = Field(
        default="https://identitytoolkit.googleapis.com/v1",
    )
    secure_token_url: str = Field(
        default="https://securetoken.googleapis.com/v1",
    )

    # ── Place Discovery (Google Places) ───────────────────────────────────
    google_maps_api_key: str = Field(default="")
    places_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api/place",
    )
    places_search_type: str = Field(default="restaurant")

    # ── Geofence & Location ───────────────────────────────────────────────
    # Radius is meters; the fix parameters mirror the device request
    # (high accuracy, 15 s timeout, 10 s max cached-fix age).
    default_search_radius_m: float = Field(default=5000.0, gt=0)
    location_timeout_s: float = Field(default=15.0, gt=0, le=120)
    location_max_age_s: float = Field(default=10.0, ge=0, le=600)
    location_high_accuracy: bool = Field(default=True)
    region_delta: float = Field(default=0.0922, gt=0, le=180)

    # ── HTTP Clients ──────────────────────────────────────────────────────
    http_timeout_s: float = Field(default=10.0, gt=0, le=120)

    # Tenacity retry settings for remote note and identity calls.
    # Place discovery is never retried.
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: float = Field(default=0.5, ge=0, le=30)
    retry_max_wait: float = Field(default=5.0, ge=0, le=120)

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)
    cors_origins: str = Field(default="http://localhost:8081")

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @property
    def cors_origins_list(self) -> List[str]:
        """Comma-separated CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def remote_notes_enabled(self) -> bool:
        return bool(self.firebase_database_url)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("firebase_database_url", "places_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def validate_required_for_production(self) -> None:
        """
        Reports integrations that are configured only halfway.

        Called during app startup. Raises ValueError listing every problem.
        """
        errors = []
        if self.firebase_database_url and not self.firebase_api_key:
            errors.append(
                "FIREBASE_DATABASE_URL is set but FIREBASE_API_KEY is not. "
                "Anonymous sign-in needs the project's Web API key."
            )
        if not self.google_maps_api_key:
            errors.append(
                "GOOGLE_MAPS_API_KEY is not set. Place discovery will return no results."
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


settings = Settings()
