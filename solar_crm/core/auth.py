"""Authentication context extraction and role guard utilities."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from solar_crm.core.config import get_settings
from solar_crm.db.dependencies import get_db_session
from solar_crm.models.entities import User, UserRole

COMPANY_WIDE_ROLES = {UserRole.ADMIN, UserRole.MANAGEMENT, UserRole.OPERATIONS, UserRole.FINANCE}


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: UUID
    email: str
    name: str
    role: UserRole

    @property
    def is_company_wide(self) -> bool:
        """Whether the actor sees every project rather than only their own."""

        return self.role in COMPANY_WIDE_ROLES


@dataclass(frozen=True)
class VisibilityScope:
    """Row visibility derived from the requesting user's role.

    ``salesperson_id`` restricts rows to one salesperson's projects; ``None``
    means company-wide.
    """

    salesperson_id: UUID | None = None

    @property
    def label(self) -> str:
        return "own" if self.salesperson_id is not None else "company"


def visibility_scope_for(context: RequestUserContext) -> VisibilityScope:
    """Recompute the row scope for the current actor."""

    if context.is_company_wide:
        return VisibilityScope()
    return VisibilityScope(salesperson_id=context.user_id)


def _resolve_identity(x_user_email: str | None) -> str:
    settings = get_settings()
    if x_user_email and x_user_email.strip():
        return x_user_email.strip().lower()

    if settings.auth_allow_dev_principal:
        return settings.auth_dev_email.strip().lower()

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing identity header. Expected X-USER-EMAIL or enable development principal fallback.",
    )


def _load_dev_principal(db: Session, *, email: str) -> User:
    settings = get_settings()
    user = User(
        email=email,
        name=settings.auth_dev_name.strip() or email,
        role=UserRole(settings.auth_dev_role.strip().upper()),
        active=True,
    )
    db.add(user)
    db.flush()
    return user


def ensure_user(db: Session, *, email: str, name: str, role: UserRole, active: bool = True) -> User:
    """Ensure user exists with the given role and return persisted row.

    Utility exported for tests and seed helpers.
    """

    normalized_email = email.strip().lower()
    user = db.scalar(select(User).where(User.email == normalized_email))
    if user is None:
        user = User(email=normalized_email, name=name.strip() or normalized_email, role=role, active=active)
        db.add(user)
    else:
        user.name = name.strip() or normalized_email
        user.role = role
        user.active = active
    db.commit()
    db.refresh(user)
    return user


def get_current_user_context(
    x_user_email: str | None = Header(default=None, alias="X-USER-EMAIL"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user and role.

    Header strategy: trusted headers set by the authenticating proxy (or test
    clients). The user must already exist and be active.
    """

    settings = get_settings()
    email = _resolve_identity(x_user_email)
    user = db.scalar(select(User).where(User.email == email))

    if user is None and settings.auth_allow_dev_principal and email == settings.auth_dev_email.strip().lower():
        user = _load_dev_principal(db, email=email)
        db.commit()

    if user is None or not user.active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or inactive user.",
        )

    return RequestUserContext(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
    )


def has_role(context: RequestUserContext, allowed_roles: set[UserRole]) -> bool:
    """Check whether user has any of the allowed roles."""

    return context.role in allowed_roles


def require_roles(*roles: UserRole):
    """Dependency factory requiring at least one provided role."""

    allowed = set(roles)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not has_role(context, allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role permissions for this operation.",
            )
        return context

    return dependency
