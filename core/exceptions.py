"""
Order error taxonomy.

Every error raised by the order core derives from OrderError and carries the
HTTP status the API layer answers with. The handler in main.py renders them
as {"detail": ..., "error": ...}.
"""

from starlette import status


class OrderError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def error(self) -> str:
        return type(self).__name__


class ValidationError(OrderError):
    """Malformed input. Not retried."""
    status_code = 422


class NotFound(OrderError):
    """Unknown order_id or courier id."""
    status_code = status.HTTP_404_NOT_FOUND


class InvalidTransition(OrderError):
    """
    State machine precondition violated, including a lost update race.
    The caller may refetch the order and retry.
    """
    status_code = status.HTTP_409_CONFLICT


class PreconditionFailed(OrderError):
    """A transition is legal but a required fact is missing (e.g. no courier)."""
    status_code = status.HTTP_412_PRECONDITION_FAILED


class AlreadyFinal(OrderError):
    """The order is already in the terminal state the caller asked for."""
    status_code = status.HTTP_409_CONFLICT
