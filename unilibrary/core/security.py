"""Password hashing, JWT tokens and the role -> capability policy.

Every protected route declares the single capability it needs with
``Depends(require("..."))``; the caller's role is read from the token once
and looked up in ``POLICY``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from unilibrary.core.config import settings
from unilibrary.core.errors import AuthenticationError, ForbiddenError

ROLE_STUDENT = "STUDENT"
ROLE_ASSISTANT = "ASSISTANT"
ROLE_LIBRARIAN = "LIBRARIAN"
ROLE_ADMIN = "ADMIN"

_STUDENT_CAPS = frozenset({
    "catalog:read",
    "self:scan",
    "self:read",
    "announcements:read",
    "hours:read",
})
_ASSISTANT_CAPS = (_STUDENT_CAPS - {"self:scan"}) | {
    "entries:manage",
    "borrows:manage",
    "students:read",
    "gate:scan",
}
_LIBRARIAN_CAPS = _ASSISTANT_CAPS | {
    "catalog:write",
    "fines:manage",
    "students:write",
    "hours:write",
    "announcements:write",
    "cctv:manage",
    "fingerprints:manage",
    "reports:read",
}
_ADMIN_CAPS = _LIBRARIAN_CAPS | {"librarians:manage"}

POLICY = {
    ROLE_STUDENT: _STUDENT_CAPS,
    ROLE_ASSISTANT: _ASSISTANT_CAPS,
    ROLE_LIBRARIAN: _LIBRARIAN_CAPS,
    ROLE_ADMIN: _ADMIN_CAPS,
}


@dataclass(frozen=True)
class Principal:
    subject: str  # librarian username or 8-digit student_id
    role: str

    @property
    def is_student(self) -> bool:
        return self.role == ROLE_STUDENT

    def can(self, capability: str) -> bool:
        return capability in POLICY.get(self.role, frozenset())


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def create_access_token(subject: str, role: str, expires_minutes: Optional[int] = None) -> str:
    minutes = settings.jwt_expiration_minutes if expires_minutes is None else expires_minutes
    issued = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "role": role,
        "iat": issued,
        "exp": issued + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Principal:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid authentication token")
    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or role not in POLICY:
        raise AuthenticationError("Invalid authentication token")
    return Principal(subject=subject, role=role)


bearer_scheme = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Principal:
    if credentials is None:
        raise AuthenticationError("Authentication required")
    return decode_access_token(credentials.credentials)


def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Optional[Principal]:
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)


def require(capability: str):
    """Dependency factory: resolve the caller and check one capability."""

    def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.can(capability):
            raise ForbiddenError("You are not authorized to perform this action")
        return principal

    return checker
