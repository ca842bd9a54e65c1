"""
Error taxonomy of the ticket engine.

Validation and transition errors subclass ValueError and lookups subclass
LookupError so callers that only know the builtins still catch them.
"""


class TicketEngineError(Exception):
    """Base class for errors raised by the engine."""


class ValidationError(TicketEngineError, ValueError):
    """Missing or invalid input, rejected before any write."""


class InvalidTransitionError(ValidationError):
    """Requested move is not allowed by the ticket state machine."""


class NotFoundError(TicketEngineError, LookupError):
    """Ticket, technician, user or community id does not resolve."""


class ConflictError(TicketEngineError):
    """A compare-and-set write lost against a concurrent update."""
