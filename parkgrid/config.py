"""Settings for connecting a parkgrid client."""

import os
from datetime import timedelta

from pydantic import BaseModel, Field

from .exceptions import ConfigurationError
from .identity import DEFAULT_IDENTITY_PATH
from .utils import HEARTBEAT_INTERVAL, LEASE_TTL, POLL_INTERVAL


class ParkGridSettings(BaseModel):
    """Connection and timing settings."""

    url: str = Field(description="PostgREST/Supabase project URL")
    api_key: str = Field(description="API key sent as apikey and bearer token")
    table: str = Field(default="parking_slots", description="Table holding the slots")
    identity_path: str = Field(
        default=DEFAULT_IDENTITY_PATH, description="File holding this client's durable id"
    )
    lease_ttl: timedelta = LEASE_TTL
    heartbeat_interval: timedelta = HEARTBEAT_INTERVAL
    poll_interval: timedelta = POLL_INTERVAL
    timeout: float = 30

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls, **overrides) -> "ParkGridSettings":
        """Build settings from environment variables.

        Reads PARKGRID_URL, PARKGRID_API_KEY, PARKGRID_TABLE,
        PARKGRID_IDENTITY_PATH and PARKGRID_POLL_INTERVAL (seconds). Keyword
        arguments take precedence.

        Returns:
            ParkGridSettings

        Raises:
            ConfigurationError: If URL or API key is missing
        """
        values = {
            "url": os.environ.get("PARKGRID_URL"),
            "api_key": os.environ.get("PARKGRID_API_KEY"),
            "table": os.environ.get("PARKGRID_TABLE"),
            "identity_path": os.environ.get("PARKGRID_IDENTITY_PATH"),
            "poll_interval": os.environ.get("PARKGRID_POLL_INTERVAL"),
        }
        values = {key: value for key, value in values.items() if value}
        values.update(overrides)

        if not values.get("url") or not values.get("api_key"):
            raise ConfigurationError(
                "Store URL and API key must be provided either as arguments or "
                "via PARKGRID_URL and PARKGRID_API_KEY environment variables"
            )

        if "poll_interval" in values and isinstance(values["poll_interval"], str):
            try:
                values["poll_interval"] = timedelta(seconds=float(values["poll_interval"]))
            except ValueError as e:
                raise ConfigurationError(
                    f"PARKGRID_POLL_INTERVAL must be a number of seconds: {e}"
                ) from e

        return cls(**values)
