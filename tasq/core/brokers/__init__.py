from tasq.core.brokers.redis import RedisBroker
from tasq.core.brokers.result_types import (
    BrokerErrorCode,
    BrokerOperationError,
    BrokerResult,
    EnqueueOutcome,
)

__all__ = [
    'RedisBroker',
    'BrokerErrorCode',
    'BrokerOperationError',
    'BrokerResult',
    'EnqueueOutcome',
]
