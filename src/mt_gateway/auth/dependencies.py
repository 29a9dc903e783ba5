"""Request identity resolution and FastAPI auth dependencies.

Usage in any protected router:
    from src.mt_gateway.auth.dependencies import get_current_principal

    @router.get("/protected")
    async def protected(principal: Principal = Depends(get_current_principal)):
        ...
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from src.mt_common.enums import ROLE_PERMISSIONS, Permission, Role, TokenType
from src.mt_common.errors import PermissionDeniedError, TokenError, UnauthenticatedError
from src.mt_gateway.auth.jwt_handler import TokenCodec, token_codec
from src.mt_gateway.auth.revocation import RevocationRegistry

logger = logging.getLogger("mt.auth")

# tokenUrl tells Swagger UI where to get a token (used for the "Authorize" button)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of one request."""

    person_id: int
    role: Role

    def has(self, permission: Permission) -> bool:
        return permission in ROLE_PERMISSIONS[self.role]


class IdentityResolver:
    """Bearer token -> Principal, without touching the database."""

    def __init__(self, codec: TokenCodec, registry: RevocationRegistry) -> None:
        self._codec = codec
        self._registry = registry

    async def resolve(self, token: str) -> Principal:
        """Raises UnauthenticatedError for any bad, expired or revoked token.

        The concrete reason is logged but never returned to the caller.
        """
        try:
            claims = self._codec.verify(token, expected_type=TokenType.ACCESS)
        except TokenError as exc:
            logger.debug("Rejected token: %s", type(exc).__name__)
            raise UnauthenticatedError() from None

        if await self._registry.is_revoked(token):
            logger.debug("Rejected revoked token for person %s", claims.subject)
            raise UnauthenticatedError()

        return Principal(person_id=claims.subject, role=claims.role or Role.USER)


def get_revocation_registry(request: Request) -> RevocationRegistry:
    """The registry installed on app.state by src.main."""
    registry: RevocationRegistry = request.app.state.revocation_registry
    return registry


def get_identity_resolver(
    registry: RevocationRegistry = Depends(get_revocation_registry),
) -> IdentityResolver:
    return IdentityResolver(token_codec, registry)


async def get_current_principal(
    token: str = Depends(oauth2_scheme),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Principal:
    """Extract and validate the Bearer token.

    Raises HTTP 401 if the token is missing, invalid, expired or revoked.
    """
    try:
        return await resolver.resolve(token)
    except UnauthenticatedError:
        raise _CREDENTIALS_EXCEPTION from None


def require_permission(
    permission: Permission,
) -> Callable[[Principal], Awaitable[Principal]]:
    """Dependency factory: 403 unless the caller's role grants `permission`."""

    async def _check(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if not principal.has(permission):
            raise PermissionDeniedError(permission.value)
        return principal

    return _check
