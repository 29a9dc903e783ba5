"""Pydantic request/response schemas for mt_gateway.

All responses are wrapped in ApiResponse at the router layer.
"""

import re
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.mt_common.money import money_to_display
from src.mt_gateway.auth.password import MAX_PASSWORD_BYTES
from src.mt_gateway.user.db_models import PersonModel


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[a-zA-Z0-9_]+$")
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    full_name: str = Field(..., min_length=1, max_length=128)

    @field_validator("password")
    @classmethod
    def password_complexity(cls, v: str) -> str:
        """Enforce the bcrypt byte limit and mixed case plus a digit."""
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8")
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one digit")
        return v

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Full name must not be blank")
        return v


class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str | None = None


class PersonInfo(BaseModel):
    """Outward view of a person. Never carries the password digest."""

    person_id: int
    username: str
    email: str
    full_name: str
    role: str
    balance: Decimal
    balance_display: str
    created_at: datetime | None

    @classmethod
    def from_model(cls, person: PersonModel) -> "PersonInfo":
        balance = person.balance if person.balance is not None else Decimal("0.00")
        return cls(
            person_id=person.id,
            username=person.username,
            email=person.email,
            full_name=person.full_name,
            role=person.role,
            balance=balance,
            balance_display=money_to_display(balance),
            created_at=person.created_at,
        )


class TokenPairResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600  # access token lifetime in seconds
    person: PersonInfo
