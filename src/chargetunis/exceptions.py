"""Exception hierarchy for the ChargeTunis core."""


class ChargeTunisError(Exception):
    """Base class for all ChargeTunis errors."""


class TransportFailure(ChargeTunisError):
    """
    A gateway call did not produce a usable response.

    Covers connection errors, non-2xx responses and malformed bodies. The
    message is always human readable and safe to show to the user.
    """

    def __init__(self, message: str, operation: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.status_code = status_code


class InvalidTransitionError(ChargeTunisError):
    """A session action was invoked in a step that does not offer it."""


class SessionBusyError(ChargeTunisError):
    """A session action was invoked while the same action is still in flight."""
