"""Session token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
The token carries the account id in "sub" and an "exp" claim; nothing is
stored server-side. Whoever holds the string is the session. The only way
to revoke tokens early is rotating CROSSFUN_JWT_SECRET, which invalidates
every outstanding token at once.

Verification failures come in two flavors so the client can tell them
apart: TokenExpired (re-authenticate) and TokenMalformed (bad signature,
garbage, wrong algorithm, missing subject).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from crossfun.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


class TokenExpired(TokenError):
    """Signature is valid but the token is past its exp claim."""


class TokenMalformed(TokenError):
    """Bad signature, bad format, or missing claims."""


def create_access_token(
    account_id: str,
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> str:
    """Create a signed session token for an account."""
    issued = now or datetime.now(timezone.utc)
    expires = issued + (expires_delta or timedelta(days=settings.jwt_expire_days))
    payload = {
        "sub": str(account_id),
        "type": "access",
        "exp": expires,
        "iat": issued,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a token.

    Returns the payload dict on success.
    Raises TokenExpired or TokenMalformed on failure.
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenMalformed(f"Invalid token: {e}")


def validate_token(token: str) -> str:
    """Verify a token and return the account id it was issued for."""
    payload = verify_token(token)
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise TokenMalformed("Invalid token: missing subject")
    return subject
