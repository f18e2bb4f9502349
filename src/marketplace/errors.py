"""Marketplace-specific exceptions.

Input and precondition failures use protean's ``ValidationError`` and missing
records use protean's ``ObjectNotFoundError``. The exceptions below cover the
remaining classes of failure the HTTP layer maps to distinct status codes.
All of them carry a ``messages`` dict shaped like protean's exceptions.
"""


class MarketplaceError(Exception):
    """Base class for marketplace errors that carry field-keyed messages."""

    def __init__(self, messages, **kwargs):
        super().__init__(messages)
        self.messages = messages
        self.kwargs = kwargs

    def __str__(self):
        return str(self.messages)


class ConflictError(MarketplaceError):
    """The request conflicts with the current state of a record.

    Raised for illegal status transitions, stale price or stock at checkout,
    and idempotency keys reused with a different payload.
    """


class ForbiddenError(MarketplaceError):
    """The acting user is not allowed to perform the requested change."""


class ServiceUnavailableError(MarketplaceError):
    """An external collaborator timed out or failed after retrying."""


def transition_conflict(entity, current, attempted):
    """Build the ConflictError raised for a disallowed (from, to) pair."""
    return ConflictError(
        {
            "status": [f"Cannot transition {entity} from {current} to {attempted}"],
            "current_status": [current],
            "attempted_status": [attempted],
        }
    )
