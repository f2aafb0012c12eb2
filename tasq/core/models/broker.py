# tasq/core/models/broker.py
from pydantic import BaseModel, Field, field_validator, model_validator

from tasq.core.errors import (
    ConfigurationError,
    ErrorCode,
    ValidationReport,
    raise_collected,
)
from tasq.core.utils.url import REDIS_URL_SCHEMES, mask_redis_url, redis_url_scheme


class RedisConfig(BaseModel):
    redis_url: str = Field(
        default='redis://localhost:6379/0', description='The URL of the Redis server'
    )
    max_connections: int = Field(
        default=10, description='The maximum number of pooled connections'
    )
    socket_timeout: float = Field(
        default=5.0, description='Seconds to wait for a reply before failing'
    )
    socket_connect_timeout: float = Field(
        default=5.0, description='Seconds to wait while opening a connection'
    )

    @field_validator('redis_url')
    def validate_redis_url(cls, v: str) -> str:
        scheme = redis_url_scheme(v)
        if scheme not in REDIS_URL_SCHEMES:
            raise ConfigurationError(
                message='invalid Redis URL scheme',
                code=ErrorCode.BROKER_INVALID_URL,
                notes=[
                    f'got: {mask_redis_url(v) if scheme else v[:20]}',
                    f'supported schemes: {", ".join(sorted(REDIS_URL_SCHEMES))}',
                ],
                help_text="use 'redis://[:password@]host:port/db'",
            )
        return v

    @model_validator(mode='after')
    def validate_pool_settings(self):
        report = ValidationReport('broker config')

        if self.max_connections <= 0:
            report.add(
                ConfigurationError(
                    message='max_connections must be positive',
                    code=ErrorCode.CONFIG_INVALID_POOL,
                    notes=[f'got max_connections={self.max_connections}'],
                )
            )
        for name in ('socket_timeout', 'socket_connect_timeout'):
            value = getattr(self, name)
            if value <= 0:
                report.add(
                    ConfigurationError(
                        message=f'{name} must be positive',
                        code=ErrorCode.CONFIG_INVALID_TIMEOUT,
                        notes=[f'got {name}={value}'],
                        help_text='use a number of seconds, e.g. 5.0',
                    )
                )

        raise_collected(report)
        return self

    def masked_url(self) -> str:
        return mask_redis_url(self.redis_url)
