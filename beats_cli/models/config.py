"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator

SUPPORTED_AUDIO_MIME_TYPES = (
    "audio/mpeg",
    "audio/mp4",
    "audio/flac",
    "audio/ogg",
    "audio/x-flac",
    "audio/aac",
)


class PlayerConfig(BaseModel):
    """A validated configuration model for the application."""

    # Catalog
    catalog_path: str = ""

    # Enrichment Settings
    max_concurrent: int = 8
    fetch_attempts: int = 2
    fetch_timeout: float = 30.0
    track_timeout: float = 0.0
    default_mime_type: str = "audio/mpeg"

    # Playback Settings
    tick_interval: float = 0.25
    autoplay: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("max_concurrent")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Ensures a reasonable number of concurrent fetches."""
        if v < 1 or v > 32:
            raise ValueError("Max concurrent fetches must be between 1 and 32.")
        return v

    @field_validator("fetch_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1 or v > 5:
            raise ValueError("Fetch attempts must be between 1 and 5.")
        return v

    @field_validator("fetch_timeout", "track_timeout")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        """Timeouts are in seconds; 0 disables the per-track timeout."""
        if v < 0:
            raise ValueError("Timeouts cannot be negative.")
        return v

    @field_validator("tick_interval")
    @classmethod
    def validate_tick_interval(cls, v: float) -> float:
        if not 0.05 <= v <= 5.0:
            raise ValueError("Tick interval must be between 0.05 and 5 seconds.")
        return v

    @field_validator("default_mime_type")
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        v = v.lower()
        if v not in SUPPORTED_AUDIO_MIME_TYPES:
            raise ValueError(
                f"Default MIME type must be one of: {', '.join(SUPPORTED_AUDIO_MIME_TYPES)}."
            )
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
