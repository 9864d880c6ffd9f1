"""Session configuration with environment variable loading.

Pydantic-based configuration for the career assistant client.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file
load_dotenv()


class SessionConfig(BaseModel):
    """Configuration for a career assistant session.

    Attributes:
        api_base_url: Base URL of the career assistant API.
        location: User location sent with every chat request.
        request_timeout: HTTP timeout in seconds.
        history_window: Number of prior messages sent as context.
        persist_limit: Number of recent messages kept in durable storage.
        storage_path: JSON file holding persisted history.
        storage_key: Key the history is stored under.
    """

    model_config = ConfigDict(validate_default=True)

    api_base_url: str = Field(
        default_factory=lambda: os.getenv("API_BASE_URL", "http://localhost:8000/api/v1"),
        description="Career assistant API base URL",
    )
    location: str = Field(
        default_factory=lambda: os.getenv("ASSISTANT_LOCATION", "南溪"),
        description="Location hint for job searches",
    )
    request_timeout: float = Field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT", "120")),
        ge=1.0,
        description="HTTP timeout in seconds",
    )
    history_window: int = Field(
        default=10,
        ge=0,
        description="Prior messages sent to the backend as context",
    )
    persist_limit: int = Field(
        default=20,
        ge=1,
        description="Most recent messages kept in durable storage",
    )
    storage_path: str = Field(
        default_factory=lambda: os.getenv("HISTORY_PATH", "data/history.json"),
        description="Path of the history JSON file",
    )
    storage_key: str = Field(
        default="careerAssistantMessages",
        min_length=1,
        description="Key the history is stored under",
    )

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Require a base URL and drop any trailing slash."""
        if not v or not v.strip():
            raise ValueError("API base URL required. Set API_BASE_URL in .env")
        return v.strip().rstrip("/")


def get_session_config() -> SessionConfig:
    """Create session configuration from environment.

    Returns:
        Configured SessionConfig instance.

    Raises:
        ValueError: If the API base URL is empty.
    """
    return SessionConfig()
