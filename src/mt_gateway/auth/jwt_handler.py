"""JWT token creation and verification.

HS256 (symmetric HMAC) via python-jose. One process-wide secret, checked for
minimum length when the codec is built, so a weak secret fails at startup.

verify() reports WHY a token is unusable through the TokenError hierarchy.
Callers on the request path must not forward that reason to clients; the
identity resolver collapses every TokenError into a single 401.
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError

from config.settings import settings
from src.mt_common.datetime_utils import from_timestamp, utc_now
from src.mt_common.enums import Role, TokenType
from src.mt_common.errors import (
    ConfigError,
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureError,
    TokenTypeError,
)

_REQUIRED_CLAIMS = ("sub", "type", "iat", "exp", "jti")


@dataclass(frozen=True)
class TokenClaims:
    subject: int
    issued_at: datetime
    expires_at: datetime
    token_type: TokenType
    token_id: str
    role: Role | None = None


class TokenCodec:
    """Issue and verify signed, expiring identity tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        min_secret_length: int = 32,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if secret is None or len(secret.strip()) < min_secret_length:
            raise ConfigError(
                f"JWT secret must be at least {min_secret_length} characters"
            )
        if not algorithm.startswith("HS"):
            raise ConfigError(f"Only HMAC algorithms are supported, got {algorithm}")
        self._secret = secret
        self._algorithm = algorithm
        self._clock = clock

    def issue(
        self,
        subject: int,
        ttl: timedelta,
        token_type: TokenType = TokenType.ACCESS,
        role: Role | None = None,
    ) -> str:
        # NumericDate is whole seconds; truncate once so exp - iat == ttl exactly.
        iat = int(self._clock().timestamp())
        payload: dict[str, Any] = {
            "sub": str(subject),
            "type": token_type.value,
            "iat": iat,
            "exp": iat + int(ttl.total_seconds()),
            "jti": uuid.uuid4().hex,
        }
        if role is not None:
            payload["role"] = role.value
        return str(jwt.encode(payload, self._secret, algorithm=self._algorithm))

    def verify(
        self, token: str, expected_type: TokenType | None = TokenType.ACCESS
    ) -> TokenClaims:
        """Decode and validate a token.

        Args:
            token: Raw JWT string.
            expected_type: Strictly enforced to prevent token type confusion.
                           None accepts any type (used by logout).

        Raises:
            TokenMalformedError: not a decodable JWT, or claims missing/invalid.
            TokenSignatureError: signature does not match.
            TokenExpiredError: correctly signed but past expires_at.
            TokenTypeError: correctly signed, unexpired, wrong type.
        """
        try:
            jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except (JWTError, AttributeError, TypeError):
            raise TokenMalformedError() from None

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],  # Explicit list prevents algorithm confusion
                # Expiry is checked below against our own clock
                options={"verify_exp": False},
            )
        except JWTClaimsError:
            raise TokenMalformedError() from None
        except JWTError:
            raise TokenSignatureError() from None

        claims = self._parse_claims(payload)
        if self._clock() > claims.expires_at:
            raise TokenExpiredError()
        if expected_type is not None and claims.token_type is not expected_type:
            raise TokenTypeError()
        return claims

    @staticmethod
    def _parse_claims(payload: dict[str, Any]) -> TokenClaims:
        if any(name not in payload for name in _REQUIRED_CLAIMS):
            raise TokenMalformedError()
        try:
            role = Role(payload["role"]) if payload.get("role") is not None else None
            return TokenClaims(
                subject=int(payload["sub"]),
                issued_at=from_timestamp(int(payload["iat"])),
                expires_at=from_timestamp(int(payload["exp"])),
                token_type=TokenType(payload["type"]),
                token_id=str(payload["jti"]),
                role=role,
            )
        except (TypeError, ValueError, OverflowError, OSError):
            raise TokenMalformedError() from None


ACCESS_TTL = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
REFRESH_TTL = timedelta(hours=settings.JWT_REFRESH_EXPIRE_HOURS)

# Built at import: a bad JWT_SECRET stops the app before it serves anything.
token_codec = TokenCodec(
    settings.JWT_SECRET,
    algorithm=settings.JWT_ALGORITHM,
    min_secret_length=settings.JWT_MIN_SECRET_LENGTH,
)

