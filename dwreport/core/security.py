# dwreport/core/security.py
# Session lookup, the per-token session context cache and the access dependencies.
import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from dwreport.core.access import Access, Page, Role, resolve_access
from dwreport.core.config import settings
from dwreport.core.exceptions import IdentityError, StoreError
from dwreport.db import queries, session
from dwreport.schemas import user as user_schema
from dwreport.services.identity import IdentityUser, get_identity

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


@dataclass
class SessionContext:
    token: str
    user: IdentityUser
    profile: Optional[user_schema.Profile]
    expires_at: float = 0.0

    @property
    def expired(self) -> bool:
        return time.time() >= self.expires_at

    @property
    def role(self) -> Optional[Role]:
        return Role.parse(self.profile.role) if self.profile is not None else None


class SessionCache:
    """
    One SessionContext per access token, dropped on sign-in/sign-out, profile
    edits and once its `expires_at` passes. Expired entries are swept on put.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._by_token: dict[str, SessionContext] = {}

    def get(self, token: str) -> Optional[SessionContext]:
        with self._lock:
            ctx = self._by_token.get(token)
            if ctx is not None and ctx.expired:
                del self._by_token[token]
                return None
            return ctx

    def put(self, ctx: SessionContext) -> None:
        with self._lock:
            for token in [t for t, c in self._by_token.items() if c.expired]:
                del self._by_token[token]
            self._by_token[ctx.token] = ctx

    def invalidate_token(self, token: str) -> None:
        with self._lock:
            self._by_token.pop(token, None)

    def invalidate_user(self, auth_user_id: str) -> None:
        with self._lock:
            for token in [t for t, c in self._by_token.items() if c.user.id == auth_user_id]:
                del self._by_token[token]

    def clear(self) -> None:
        with self._lock:
            self._by_token.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_token)


session_cache = SessionCache()


def get_access_token(request: Request, bearer: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    return bearer or request.cookies.get(settings.SESSION_COOKIE_NAME)


def _user_from_token(token: str, identity) -> tuple[Optional[IdentityUser], float]:
    """Resolves a token to its user and the time until which that answer may be cached."""
    expires_at = time.time() + settings.SESSION_CACHE_SECONDS
    if settings.SUPABASE_JWT_SECRET:
        try:
            payload = jwt.decode(
                token,
                settings.SUPABASE_JWT_SECRET,
                algorithms=[settings.JWT_ALGORITHM],
                audience=settings.JWT_AUDIENCE,
            )
        except JWTError:
            return None, 0.0
        sub = payload.get("sub")
        if not sub:
            return None, 0.0
        if payload.get("exp") is not None:
            expires_at = min(expires_at, float(payload["exp"]))
        return IdentityUser(
            id=sub,
            email=payload.get("email"),
            user_metadata=payload.get("user_metadata") or {},
            app_metadata=payload.get("app_metadata") or {},
        ), expires_at
    try:
        return identity.get_user(token), expires_at
    except IdentityError as exc:
        logger.info("Session lookup rejected: %s", exc.message)
        return None, 0.0


def get_session_context(
    token: Optional[str] = Depends(get_access_token),
    db: Session = Depends(session.get_db),
    identity=Depends(get_identity),
) -> Optional[SessionContext]:
    """The signed-in user and their profile, or None when there is no valid session."""
    if not token:
        return None
    cached = session_cache.get(token)
    if cached is not None:
        return cached
    user, expires_at = _user_from_token(token, identity)
    if user is None:
        return None
    try:
        # auth ids and profile ids differ; always map through auth_user_id
        record = queries.get_profile_by_auth_id(db, user.id)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    profile = user_schema.Profile.model_validate(record) if record is not None else None
    ctx = SessionContext(token=token, user=user, profile=profile, expires_at=expires_at)
    session_cache.put(ctx)
    return ctx


def _require(page: Page, ctx: Optional[SessionContext]) -> SessionContext:
    decision = resolve_access(ctx.user if ctx else None, ctx.role if ctx else None, page)
    if decision is Access.LOGIN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if decision is Access.DEFAULT_PAGE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    return ctx


def get_current_session(ctx: Optional[SessionContext] = Depends(get_session_context)) -> SessionContext:
    return _require(Page.REPORT, ctx)


def get_current_profile(ctx: SessionContext = Depends(get_current_session)) -> user_schema.Profile:
    if ctx.profile is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Could not load your profile.")
    return ctx.profile


def get_current_admin(ctx: Optional[SessionContext] = Depends(get_session_context)) -> SessionContext:
    return _require(Page.ADMIN, ctx)
