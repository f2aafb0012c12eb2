"""tasq - producer client for a Redis-backed distributed task queue"""

# Install Rust-style error handler on import
from .core.errors import install_error_handler as _install_error_handler

_install_error_handler()

from .core.client import Client
from .core.models.client import ClientConfig
from .core.models.broker import RedisConfig
from .core.models.tasks import Task, TaskInfo, project_task_info
from .core.models.options import (
    TaskOptions,
    ResolvedOptions,
    resolve_options,
    validate_submission,
)
from .core.models.message import TaskMessage, build_task_message
from .core.models.task_send_types import (
    TaskSendError,
    TaskSendErrorCode,
    TaskSendResult,
)
from .core.types.status import TaskState
from .core.codec.serde import JsonMessageCodec, MessageCodec, SerializationError
from .core.brokers import (
    RedisBroker,
    BrokerErrorCode,
    BrokerOperationError,
    BrokerResult,
    EnqueueOutcome,
)
from .core.errors import (
    ErrorCode,
    TasqError,
    ConfigurationError,
    TaskValidationError,
    MultipleValidationErrors,
    ValidationReport,
)
from .core.defaults import (
    DEFAULT_QUEUE,
    DEFAULT_MAX_RETRY,
    DEFAULT_TIMEOUT,
)

__all__ = [
    # Core
    'Client',
    'ClientConfig',
    'RedisConfig',
    'Task',
    'TaskInfo',
    'TaskState',
    'project_task_info',
    # Options
    'TaskOptions',
    'ResolvedOptions',
    'resolve_options',
    'validate_submission',
    'DEFAULT_QUEUE',
    'DEFAULT_MAX_RETRY',
    'DEFAULT_TIMEOUT',
    # Messages
    'TaskMessage',
    'build_task_message',
    'MessageCodec',
    'JsonMessageCodec',
    'SerializationError',
    # Broker
    'RedisBroker',
    'BrokerErrorCode',
    'BrokerOperationError',
    'BrokerResult',
    'EnqueueOutcome',
    # Submission results
    'TaskSendError',
    'TaskSendErrorCode',
    'TaskSendResult',
    # Errors
    'ErrorCode',
    'TasqError',
    'ConfigurationError',
    'TaskValidationError',
    'MultipleValidationErrors',
    'ValidationReport',
]
