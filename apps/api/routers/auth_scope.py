"""Authentication dependencies resolving the caller from a session token."""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from database import get_db
from models.admin import Admin
from models.user import User
from services.errors import Forbidden, Unauthorized
from services.identity import CreatorRef
from services.session_token import decode_session_token


auth_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    subject_id: str
    kind: str
    role: Optional[str] = None


@dataclass
class Principal:
    """Resolved caller: either an active User or an active Admin."""

    kind: str
    entity: Any

    @property
    def id(self) -> str:
        return self.entity.id

    @property
    def role(self) -> Optional[str]:
        return self.entity.role

    @property
    def creator_ref(self) -> CreatorRef:
        return CreatorRef(kind="Admin" if self.kind == "admin" else "User", id=self.entity.id)


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.AUTH_COOKIE_NAME) or None


async def get_optional_auth_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
) -> Optional[AuthContext]:
    """Resolve the caller if a valid token is present, otherwise ``None``."""
    token = _extract_token(request, credentials)
    if not token:
        return None
    try:
        payload = decode_session_token(token)
    except ValueError:
        return None
    return AuthContext(
        subject_id=str(payload["sub"]),
        kind=str(payload["kind"]),
        role=payload.get("role"),
    )


async def get_auth_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
) -> AuthContext:
    """Resolve authenticated caller from a Bearer header or the session cookie."""
    token = _extract_token(request, credentials)
    if not token:
        raise Unauthorized("Not authorized to access this route")
    try:
        payload = decode_session_token(token)
    except ValueError as exc:
        raise Unauthorized("Not authorized to access this route") from exc
    return AuthContext(
        subject_id=str(payload["sub"]),
        kind=str(payload["kind"]),
        role=payload.get("role"),
    )


async def _load_principal(auth: AuthContext, db: AsyncSession) -> Optional[Principal]:
    model = Admin if auth.kind == "admin" else User
    entity = (await db.execute(select(model).where(model.id == auth.subject_id))).scalar_one_or_none()
    if entity is None:
        return None
    if not entity.is_active:
        raise Unauthorized("Your account has been deactivated")
    return Principal(kind=auth.kind, entity=entity)


async def require_user(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
) -> User:
    if auth.kind != "user":
        raise Unauthorized("Not authorized to access this route")
    principal = await _load_principal(auth, db)
    if principal is None:
        raise Unauthorized("The user belonging to this token no longer exists")
    return principal.entity


async def require_admin(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
) -> Admin:
    if auth.kind != "admin":
        raise Unauthorized("Not authorized to access this route")
    principal = await _load_principal(auth, db)
    if principal is None:
        raise Unauthorized("The admin belonging to this token no longer exists")
    return principal.entity


async def require_any(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    principal = await _load_principal(auth, db)
    if principal is None:
        raise Unauthorized("User/Admin not found")
    return principal


async def get_optional_principal(
    auth: Optional[AuthContext] = Depends(get_optional_auth_context),
    db: AsyncSession = Depends(get_db),
) -> Optional[Principal]:
    if auth is None:
        return None
    try:
        return await _load_principal(auth, db)
    except Unauthorized:
        return None


def authorize(*roles: str) -> Callable[..., Any]:
    """Dependency granting access to admins with one of ``roles``.

    A platform user whose role is ``admin`` passes when ``admin`` is listed.
    """

    async def _dependency(principal: Principal = Depends(require_any)) -> Principal:
        if principal.kind == "admin":
            if principal.role in roles:
                return principal
            raise Forbidden(f"Admin role {principal.role} is not authorized to access this route")
        if principal.role == "admin" and "admin" in roles:
            return principal
        raise Forbidden(f"User role {principal.role} is not authorized to access this route")

    return _dependency
