# tasq/core/keys.py
"""Redis key layout used by asynq.

The keys match asynq; the encoded message in each task hash is whatever the
broker's MessageCodec produces, so asynq consumers also need a matching codec.

Every per-queue key embeds the queue name in a hash tag (``{qname}``) so all
keys of one queue land on the same cluster slot and can be touched by a single
Lua script.
"""

from __future__ import annotations

KEY_NAMESPACE = 'asynq'

# Set of every queue name a producer or consumer has ever used.
ALL_QUEUES = f'{KEY_NAMESPACE}:queues'


def queue_key_prefix(qname: str) -> str:
    return f'{KEY_NAMESPACE}:{{{qname}}}:'


def task_key_prefix(qname: str) -> str:
    return f'{queue_key_prefix(qname)}t:'


def task_key(qname: str, task_id: str) -> str:
    """Hash holding the encoded message and state of one task."""
    return f'{task_key_prefix(qname)}{task_id}'


def pending_key(qname: str) -> str:
    """List of task ids ready to be processed (LPUSH in, RPOP out)."""
    return f'{queue_key_prefix(qname)}pending'


def scheduled_key(qname: str) -> str:
    """Sorted set of task ids scored by their process_at Unix time."""
    return f'{queue_key_prefix(qname)}scheduled'
