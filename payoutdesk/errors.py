"""Exception types raised by the engine."""


__all__ = [
    "ConfigurationError",
    "PayoutDeskError",
]


class PayoutDeskError(Exception):
    """Base class for all payoutdesk errors."""


class ConfigurationError(PayoutDeskError, ValueError):
    """Caller programming error: unknown window kind, granularity, sort key, etc.

    Not user-recoverable. Callers should validate selector input at their
    boundary so this never reaches a dashboard view.
    """
