"""Service layer exceptions.

Services and auth dependencies raise these instead of building HTTP
responses themselves. Each class carries the status code the application
factory uses when converting it to a JSON body at the handler boundary.
"""

from typing import List, Optional


class ServiceError(Exception):
    """Base service exception (-> HTTP 500 unless overridden)."""
    status_code = 500

    def __init__(self, msg: str):
        super().__init__(msg)
        self.msg = msg


class ValidationError(ServiceError):
    """Field-level validation failure (-> HTTP 400 with an `errors` list)."""
    status_code = 400

    def __init__(self, msg: str, param: Optional[str] = None):
        super().__init__(msg)
        self.param = param

    def as_errors(self) -> List[dict]:
        return [{'msg': self.msg, 'param': self.param, 'location': 'body'}]


class AuthenticationError(ServiceError):
    """Missing or unusable credentials (-> HTTP 401)."""
    status_code = 401


class InvalidTokenError(AuthenticationError):
    """Token signature, payload or expiry check failed (-> HTTP 401)."""

    def __init__(self, msg: str = 'Token is not valid'):
        super().__init__(msg)


class AuthorizationError(ServiceError):
    """Authenticated, but the role is insufficient (-> HTTP 403)."""
    status_code = 403


class NotFoundError(ServiceError):
    """Resource absent or not owned by the caller (-> HTTP 404)."""
    status_code = 404


class ConflictError(ServiceError):
    """Duplicate email or license plate (-> HTTP 400)."""
    status_code = 400


class InvalidCredentialsError(ServiceError):
    """Unknown email or wrong password; deliberately indistinguishable (-> HTTP 400)."""
    status_code = 400

    def __init__(self, msg: str = 'Invalid Credentials'):
        super().__init__(msg)
