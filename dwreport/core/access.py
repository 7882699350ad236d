# dwreport/core/access.py
# Role-based page gating. This is the only module that branches on Role.
from enum import Enum

from dwreport.core.config import settings


class Role(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"

    @classmethod
    def parse(cls, value) -> "Role | None":
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class Page(str, Enum):
    REPORT = "report"
    ADMIN = "admin"


class Access(str, Enum):
    CHECKING = "checking"
    ALLOW = "allow"
    LOGIN = "redirect-login"
    DEFAULT_PAGE = "redirect-default"


class _Unresolved:
    def __repr__(self):
        return "UNRESOLVED"


# Placeholder for a session user or role whose lookup has not finished yet.
UNRESOLVED = _Unresolved()

CHECKING_PLACEHOLDER = "Checking permissions…"


def resolve_access(user, role, page: Page) -> Access:
    """
    Decides whether the holder of a session may see `page`.

    `user` is the identity-provider user (None when signed out) and `role`
    the profile role (a Role, a raw string or None when no profile exists).
    Either may be UNRESOLVED while still being looked up; protected content
    must not be rendered until this returns something other than CHECKING.
    """
    if user is UNRESOLVED:
        return Access.CHECKING
    if user is None:
        return Access.LOGIN
    if page is Page.REPORT:
        return Access.ALLOW
    if role is UNRESOLVED:
        return Access.CHECKING

    parsed = Role.parse(role) if role is not None else None
    if parsed is Role.ADMIN:
        return Access.ALLOW
    if parsed is Role.STAFF:
        return Access.DEFAULT_PAGE
    if parsed is None:
        return Access.DEFAULT_PAGE
    raise AssertionError(f"unhandled role {parsed!r}")


def redirect_location(decision: Access) -> str | None:
    if decision is Access.LOGIN:
        return settings.LOGIN_PAGE
    if decision is Access.DEFAULT_PAGE:
        return settings.DEFAULT_PAGE
    return None
