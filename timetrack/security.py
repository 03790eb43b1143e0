from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from passlib.exc import UnknownHashError

from timetrack.errors import ApiError, CrossTenantError, ForbiddenError, InvalidTokenError
from timetrack.models import User, UserRole, UserStatus
from timetrack.settings import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLES: frozenset[UserRole] = frozenset({UserRole.SUPER_ADMIN, UserRole.COMPANY_ADMIN})


@dataclass(frozen=True)
class AuthPrincipal:
    user_id: int
    role: UserRole
    tenant_id: str | None
    email: str | None = None
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return is_admin_role(self.role)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_admin_role(role: UserRole) -> bool:
    return role in ADMIN_ROLES


def can_submit_for(*, actor_id: int, actor_role: UserRole, user_id: int) -> bool:
    if is_admin_role(actor_role):
        return True
    return actor_id == user_id


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError, UnknownHashError):
        return False


def create_access_token(user: User) -> tuple[str, int]:
    settings = get_settings()
    now = _utcnow()
    claims: dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
        "tenant_id": user.tenant_id,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.access_token_minutes)).timestamp()),
        "jti": str(uuid4()),
    }
    token = jwt.encode(claims, settings.jwt_secret, algorithm="HS256")
    return token, settings.access_token_minutes * 60


def decode_token(token: str) -> AuthPrincipal:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require_sub": True, "require_iat": True, "require_exp": True},
        )
    except JWTError as exc:
        raise InvalidTokenError() from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        raise InvalidTokenError("Token subject is invalid.")
    try:
        role = UserRole(payload.get("role"))
    except ValueError as exc:
        raise InvalidTokenError("Token role is invalid.") from exc

    tenant_id = payload.get("tenant_id")
    return AuthPrincipal(
        user_id=int(subject),
        role=role,
        tenant_id=str(tenant_id) if tenant_id else None,
        email=payload.get("email"),
        name=payload.get("name"),
    )


def get_current_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthPrincipal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise InvalidTokenError("Missing bearer token.")

    principal = decode_token(credentials.credentials)
    request.state.actor = principal.role.value
    request.state.actor_id = str(principal.user_id)
    return principal


def require_admin_role(principal: AuthPrincipal = Depends(get_current_principal)) -> AuthPrincipal:
    if not principal.is_admin:
        raise ForbiddenError("Only admins can perform this action.")
    return principal


def can_login(user: User | None, password: str) -> bool:
    if user is None or user.status != UserStatus.ACTIVE:
        return False
    return verify_password(password, user.password_hash)


def resolve_tenant(principal: AuthPrincipal, requested_tenant_id: str | None = None) -> str:
    requested = (requested_tenant_id or "").strip() or None
    if principal.role == UserRole.SUPER_ADMIN:
        if requested is None:
            raise ApiError(
                status_code=400,
                code="TENANT_REQUIRED",
                message="tenant_id is required for super admin operations.",
            )
        return requested

    if not principal.tenant_id:
        raise ForbiddenError("Tenant context is missing.")
    if requested is not None and requested != principal.tenant_id:
        raise CrossTenantError()
    return principal.tenant_id
