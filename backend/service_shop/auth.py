"""Authentication helpers and FastAPI security dependencies.

This module holds the password hashing context, the `TokenService` that
issues and verifies signed identity tokens, and the two dependencies that
gate protected routes:

- `get_current_identity` reads the `x-auth-token` header and returns the
  decoded `Identity`;
- `require_admin` stacks on top of it for admin-only operations.

Tokens are stateless: nothing is stored server-side and there is no
revocation, a token stays valid until it expires.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader
from passlib.context import CryptContext

from .config import Settings
from .errors import AuthenticationError, AuthorizationError, InvalidTokenError

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
TOKEN_HEADER = 'x-auth-token'

logger = logging.getLogger("service_shop.auth")


def hash_password(password: str) -> str:
    """Return a salted one-way hash of `password`."""
    return PWD_CTX.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check `password` against a stored hash (constant-time compare)."""
    if not password or not password_hash:
        return False
    try:
        return PWD_CTX.verify(password, password_hash)
    except ValueError:
        # unrecognized hash format
        return False


def dummy_verify():
    """Spend a hash verification when no user matched, keeping login timing uniform."""
    PWD_CTX.dummy_verify()


def verify_and_update(password: str, password_hash: str) -> Tuple[bool, Optional[str]]:
    """Verify `password` and return a replacement hash if the stored one is outdated."""
    if not password or not password_hash:
        return False, None
    try:
        return PWD_CTX.verify_and_update(password, password_hash)
    except ValueError:
        return False, None


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as asserted by a verified token."""
    user_id: int
    name: str
    is_admin: bool = False


class TokenService:
    """Issue and verify HMAC-signed, time-limited identity tokens.

    The secret is handed in at construction (from `Settings`) and never
    read from module globals, so each application instance carries its own.
    """

    def __init__(self, secret: str, algorithm: str = 'HS256', lifetime: timedelta = timedelta(hours=1)):
        if not secret:
            raise ValueError('token secret must not be empty')
        self._secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime

    @classmethod
    def from_settings(cls, settings: Settings) -> 'TokenService':
        return cls(
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            lifetime=timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
        )

    def issue(self, user_id: int, name: str, is_admin: bool) -> str:
        """Return a signed token embedding the user's id, name and role."""
        now = datetime.now(timezone.utc)
        payload = {
            'user': {'id': user_id, 'name': name, 'isAdmin': bool(is_admin)},
            'iat': int(now.timestamp()),
            'exp': int((now + self.lifetime).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        """Decode `token` and return its `Identity`.

        Raises `InvalidTokenError` when the signature does not match, the
        token has expired, or the payload lacks the user claims.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={'require': ['exp', 'iat']},
            )
        except jwt.InvalidTokenError:
            # covers expiry, bad signature and malformed input
            raise InvalidTokenError()
        user = payload.get('user')
        if not isinstance(user, dict):
            raise InvalidTokenError()
        user_id = user.get('id')
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise InvalidTokenError()
        return Identity(user_id=user_id, name=str(user.get('name') or ''), is_admin=user.get('isAdmin') is True)


_token_header = APIKeyHeader(name=TOKEN_HEADER, auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_current_identity(
    token: Optional[str] = Security(_token_header),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """FastAPI dependency that returns the authenticated caller.

    Raises `AuthenticationError` (401) when the header is missing and
    `InvalidTokenError` (401) when verification fails.
    """
    if not token:
        raise AuthenticationError('No token, authorization denied')
    try:
        return tokens.verify(token)
    except InvalidTokenError:
        logger.info('rejected token')
        raise


def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    """Dependency for admin-only operations; runs after authentication."""
    if not identity.is_admin:
        logger.warning('admin route denied for user_id=%s', identity.user_id)
        raise AuthorizationError('Access denied: Admin privileges required')
    return identity
