"""Error taxonomy shared by services and routes.

Services raise these; ``main.py`` renders them into the response envelope of
the router that raised them. Anything that is not a ``ServiceError`` is an
internal failure and never reaches the caller verbatim.
"""
import functools
import logging


logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Malformed, missing or policy-violating input."""
    status_code = 400


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    """Duplicate email or phone."""
    status_code = 400


class Unauthorized(ServiceError):
    """Bad credentials, bad bearer token or missing role."""
    status_code = 401


class RateLimited(ServiceError):
    """A cooldown window is still open."""
    status_code = 400


class DependencyFailure(ServiceError):
    """Notification or store failure, reported with a safe message."""
    status_code = 500


class NotificationError(Exception):
    """Raised by a notification sender when a message could not be delivered."""


def handle_errors(message: str):
    """Decorate a route handler so unexpected failures surface as a safe 500.

    ``ServiceError`` passes through untouched; anything else is logged with
    its traceback and replaced by ``DependencyFailure(message)``.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ServiceError:
                raise
            except Exception:
                logger.exception("Unhandled error in %s", func.__name__)
                raise DependencyFailure(message)

        return wrapper

    return decorator
