from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from timetrack.audit import log_audit
from timetrack.db import get_db
from timetrack.errors import InvalidCredentialsError, UserNotFoundError
from timetrack.models import User
from timetrack.routers.common import audit_context
from timetrack.schemas import AuthResponse, LoginRequest, UserRead
from timetrack.security import AuthPrincipal, can_login, create_access_token, get_current_principal

router = APIRouter(tags=["auth"])


@router.post("/api/auth/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AuthResponse:
    email = payload.email.strip().lower()
    user = db.scalar(select(User).where(func.lower(User.email) == email))
    if user is None or not can_login(user, payload.password):
        log_audit(
            db,
            tenant_id=user.tenant_id if user is not None else None,
            user_id=user.id if user is not None else None,
            action="AUTH_LOGIN_FAILED",
            entity="User",
            entity_id=str(user.id) if user is not None else None,
            details={"email": email},
            context=audit_context(request),
        )
        raise InvalidCredentialsError()

    token, expires_in = create_access_token(user)
    log_audit(
        db,
        tenant_id=user.tenant_id,
        user_id=user.id,
        action="AUTH_LOGIN",
        entity="User",
        entity_id=str(user.id),
        context=audit_context(request),
    )
    return AuthResponse(
        access_token=token,
        expires_in=expires_in,
        user=UserRead.model_validate(user),
    )


@router.get("/api/auth/me", response_model=UserRead)
def me(
    principal: AuthPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> UserRead:
    user = db.get(User, principal.user_id)
    if user is None:
        raise UserNotFoundError()
    return UserRead.model_validate(user)
