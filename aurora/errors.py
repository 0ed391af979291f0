"""
Aurora Error Taxonomy

Three families of failure are distinguished:

    NotFound:           something the caller asked for does not exist
                        (mode not enabled, tape unknown, effect type unknown)
    NotReady:           the request is valid but a collaborator is still
                        preparing; the caller may retry later
    InvariantViolation: a programming contract was broken (double
                        initialization, mismatched disable, ...)

Operations exposed to the HTTP layer return typed results (None / False)
for NotFound and NotReady. The exceptions below exist for callers that
prefer to raise, and to let the HTTP layer map them onto status codes.
"""


class AuroraError(Exception):
    """Base exception for all Aurora core errors."""
    pass


class NotFound(AuroraError):
    """Requested object is absent."""
    pass


class ModeDisabledError(NotFound):
    """The requested mode is not enabled."""
    pass


class TapeNotFoundError(NotFound):
    """No mix tape with the requested name exists."""
    pass


class UnknownEffectError(NotFound):
    """Effect type is not part of the effect registry."""
    pass


class NotReady(AuroraError):
    """Collaborators are still initializing. Retryable."""
    pass


class InvariantViolation(AuroraError):
    """A programming contract was violated."""
    pass


def require_ready(ready: bool, message: str = "Not yet fully initialized") -> None:
    """Raise NotReady unless ready is truthy."""
    if not ready:
        raise NotReady(message)
