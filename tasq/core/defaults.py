"""Shared default constants for the tasq library."""

DEFAULT_QUEUE: str = 'default'

# Max number of re-attempts a consumer allows before archiving the task.
DEFAULT_MAX_RETRY: int = 25

# Seconds a single attempt may run. Applied only when neither timeout nor
# deadline is given, so every task has a bounded processing window.
DEFAULT_TIMEOUT: int = 60 * 30  # 30 minutes

# Zero values are the "unset" sentinels carried on the wire.
NO_TIMEOUT: int = 0
NO_DEADLINE: int = 0
DEFAULT_UNIQUE_TTL: int = 0
