# tasq/core/codec/serde.py
from __future__ import annotations

import base64
import binascii
import dataclasses
import json
from typing import Any, Dict, List, Protocol, Union, runtime_checkable

from tasq.core.logging import get_logger
from tasq.core.models.message import TaskMessage

logger = get_logger('serde')


Json = Union[None, bool, int, float, str, List['Json'], Dict[str, 'Json']]
"""
Union type for JSON-serializable values.
"""


class SerializationError(Exception):
    """
    Raised when a value or message cannot be encoded or decoded.
    """

    pass


def dumps_json(value: Any) -> str:
    """
    Encode a task payload value as compact, key-sorted JSON.

    Raises:
        SerializationError: if the value is not JSON-serializable.
    """
    try:
        return json.dumps(value, sort_keys=True, separators=(',', ':'), allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(
            f'payload of type {type(value).__name__} is not JSON-serializable: {exc}'
        ) from exc


def loads_json(data: str | bytes) -> Json:
    try:
        return json.loads(data)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f'invalid JSON: {exc}') from exc


@runtime_checkable
class MessageCodec(Protocol):
    """
    Encode/decode pair shared with consumers.

    Implementations must be deterministic for identical input and satisfy
    ``decode(encode(msg)) == msg``.
    """

    def encode(self, message: TaskMessage) -> bytes: ...

    def decode(self, data: bytes) -> TaskMessage: ...


_MESSAGE_FIELDS: tuple[str, ...] = tuple(f.name for f in dataclasses.fields(TaskMessage))


class JsonMessageCodec:
    """
    Default codec: one JSON object per message.

    The payload is base64-encoded; ``v`` carries the format version so a
    consumer can reject messages it does not understand.
    """

    version: int = 1

    def encode(self, message: TaskMessage) -> bytes:
        doc: Dict[str, Json] = {'v': self.version}
        for name in _MESSAGE_FIELDS:
            value = getattr(message, name)
            if name == 'payload':
                value = base64.b64encode(value).decode('ascii')
            doc[name] = value
        return dumps_json(doc).encode('utf-8')

    def decode(self, data: bytes) -> TaskMessage:
        doc = loads_json(data)
        if not isinstance(doc, dict):
            raise SerializationError(f'expected a JSON object, got {type(doc).__name__}')

        version = doc.pop('v', None)
        if version != self.version:
            raise SerializationError(
                f'unsupported message version {version!r} (expected {self.version})'
            )

        unknown = set(doc) - set(_MESSAGE_FIELDS)
        if unknown:
            logger.debug(f'Ignoring unknown message fields: {sorted(unknown)}')

        try:
            payload = base64.b64decode(str(doc.get('payload', '')), validate=True)
            kwargs = {name: doc[name] for name in _MESSAGE_FIELDS if name in doc}
            kwargs['payload'] = payload
            return TaskMessage(**kwargs)  # type: ignore[arg-type]
        except (binascii.Error, TypeError) as exc:
            raise SerializationError(f'malformed task message: {exc}') from exc
