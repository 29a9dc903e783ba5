"""Person domain service: register, login, refresh, logout.

All DB operations use the injected AsyncSession. Transactions are managed
by the caller (router layer) via `async with db.begin()`.
"""

import logging
from decimal import Decimal
from functools import lru_cache

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.mt_common.enums import Role, TokenType
from src.mt_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    PersonNotFoundError,
    TokenError,
    UsernameExistsError,
)
from src.mt_gateway.auth.jwt_handler import ACCESS_TTL, REFRESH_TTL, TokenCodec, token_codec
from src.mt_gateway.auth.password import hash_password, verify_password
from src.mt_gateway.auth.revocation import RevocationRegistry
from src.mt_gateway.user.db_models import PersonModel

logger = logging.getLogger("mt.auth")


@lru_cache(maxsize=1)
def _dummy_digest() -> str:
    # Verified against when the identity is unknown so both failure paths cost one bcrypt check
    return hash_password("dummy-password-never-matches")


class PersonService:
    """Stateless service: instantiate once, reuse across requests."""

    def __init__(self, codec: TokenCodec | None = None) -> None:
        self._codec = codec or token_codec

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        full_name: str,
        db: AsyncSession,
    ) -> PersonModel:
        """Register a new person with a zero balance.

        Both uniqueness checks run before anything is written; the DB UNIQUE
        constraints remain the final guard against concurrent registrations.
        The caller must wrap this in `async with db.begin()`.
        """
        email = email.lower()

        result = await db.execute(
            select(PersonModel).where(PersonModel.username == username)
        )
        if result.scalar_one_or_none() is not None:
            raise UsernameExistsError()

        result = await db.execute(
            select(PersonModel).where(PersonModel.email == email)
        )
        if result.scalar_one_or_none() is not None:
            raise EmailExistsError()

        person = PersonModel(
            username=username,
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            role=Role.USER.value,
            is_active=True,
            balance=Decimal("0.00"),
            version=0,
        )
        db.add(person)
        try:
            await db.flush()  # Get person.id without committing
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same identity
            constraint = str(exc.orig)
            if "uq_persons_username" in constraint:
                raise UsernameExistsError() from None
            if "uq_persons_email" in constraint:
                raise EmailExistsError() from None
            raise
        await db.refresh(person)  # Load server defaults (created_at)

        logger.info("Registered person %s (%s)", person.id, username)
        return person

    async def login(
        self,
        identifier: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[PersonModel, str, str]:
        """Authenticate by username OR email and return (person, access, refresh).

        "Identity not found" and "wrong password" both raise
        InvalidCredentialsError, so callers cannot enumerate accounts.
        """
        result = await db.execute(
            select(PersonModel).where(
                or_(
                    PersonModel.username == identifier,
                    PersonModel.email == identifier.lower(),
                )
            )
        )
        person = result.scalar_one_or_none()

        if person is None:
            verify_password(password, _dummy_digest())
            logger.info("Login failed: unknown identity")
            raise InvalidCredentialsError()

        if not verify_password(password, person.password_hash):
            logger.info("Login failed for person %s: bad password", person.id)
            raise InvalidCredentialsError()

        if not person.is_active:
            raise AccountDisabledError()

        access, refresh = self._issue_pair(person)
        logger.info("Person %s logged in", person.id)
        return person, access, refresh

    async def refresh(
        self,
        refresh_token: str,
        registry: RevocationRegistry,
        db: AsyncSession,
    ) -> tuple[PersonModel, str, str]:
        """Rotate a refresh token: the presented one is revoked, a new pair issued."""
        try:
            claims = self._codec.verify(refresh_token, expected_type=TokenType.REFRESH)
        except TokenError:
            raise InvalidRefreshTokenError() from None

        if await registry.is_revoked(refresh_token):
            raise InvalidRefreshTokenError()

        result = await db.execute(
            select(PersonModel).where(PersonModel.id == claims.subject)
        )
        person = result.scalar_one_or_none()
        if person is None or not person.is_active:
            raise InvalidRefreshTokenError()

        await registry.revoke(refresh_token, claims.expires_at)
        access, refresh = self._issue_pair(person)
        logger.info("Rotated refresh token for person %s", person.id)
        return person, access, refresh

    async def logout(
        self,
        access_token: str,
        registry: RevocationRegistry,
        refresh_token: str | None = None,
    ) -> None:
        """Revoke every given token that is still valid. Never fails.

        Malformed, forged or already-expired tokens cannot be used anyway,
        so they are skipped rather than stored.
        """
        for token in (access_token, refresh_token):
            if token is None:
                continue
            try:
                claims = self._codec.verify(token, expected_type=None)
            except TokenError:
                continue
            await registry.revoke(token, claims.expires_at)
            logger.info(
                "Revoked %s token for person %s", claims.token_type.value, claims.subject
            )

    async def get_person(self, person_id: int, db: AsyncSession) -> PersonModel:
        result = await db.execute(
            select(PersonModel).where(PersonModel.id == person_id)
        )
        person = result.scalar_one_or_none()
        if person is None:
            raise PersonNotFoundError(person_id)
        return person

    async def list_persons(
        self, db: AsyncSession, limit: int, offset: int
    ) -> list[PersonModel]:
        result = await db.execute(
            select(PersonModel).order_by(PersonModel.id).limit(limit).offset(offset)
        )
        return list(result.scalars().all())

    def _issue_pair(self, person: PersonModel) -> tuple[str, str]:
        role = Role(person.role)
        return (
            self._codec.issue(person.id, ACCESS_TTL, TokenType.ACCESS, role),
            self._codec.issue(person.id, REFRESH_TTL, TokenType.REFRESH),
        )
