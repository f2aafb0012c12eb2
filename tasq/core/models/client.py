# tasq/core/models/client.py
from pydantic import BaseModel, ConfigDict, Field

from tasq.core.models.broker import RedisConfig


class ClientConfig(BaseModel):
    """Producer client configuration."""

    model_config = ConfigDict(frozen=True)

    broker: RedisConfig = Field(default_factory=RedisConfig)
