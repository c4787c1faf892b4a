from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Server-Timing settings loaded from environment variables."""

    # Install the "before headers" hook that writes the Server-Timing header
    SERVER_TIMING_SEND_HEADERS: bool = True

    # Attribute of request.state holding the TimingSession
    SERVER_TIMING_STATE_KEY: str = "server_timing"

    @field_validator('SERVER_TIMING_STATE_KEY')
    @classmethod
    def validate_state_key(cls, v: str) -> str:
        """State key must be usable as an attribute name."""
        if not v.isidentifier():
            raise ValueError(f"SERVER_TIMING_STATE_KEY must be an identifier, got {v!r}")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
