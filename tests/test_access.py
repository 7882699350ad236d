import pytest

from dwreport.core.access import UNRESOLVED, Access, Page, Role, redirect_location, resolve_access

USER = object()


def test_unresolved_session_is_checking():
    assert resolve_access(UNRESOLVED, UNRESOLVED, Page.ADMIN) is Access.CHECKING
    assert resolve_access(UNRESOLVED, None, Page.REPORT) is Access.CHECKING


def test_signed_in_user_with_pending_role_is_still_checking_for_admin_pages():
    assert resolve_access(USER, UNRESOLVED, Page.ADMIN) is Access.CHECKING


def test_no_session_redirects_to_login():
    assert resolve_access(None, None, Page.ADMIN) is Access.LOGIN
    assert resolve_access(None, Role.ADMIN, Page.REPORT) is Access.LOGIN
    assert redirect_location(Access.LOGIN) == "/login"


@pytest.mark.parametrize(
    "role, expected",
    [
        (Role.ADMIN, Access.ALLOW),
        ("admin", Access.ALLOW),
        (" Admin ", Access.ALLOW),
        (Role.STAFF, Access.DEFAULT_PAGE),
        ("manager", Access.DEFAULT_PAGE),
        (None, Access.DEFAULT_PAGE),
    ],
)
def test_admin_page_by_role(role, expected):
    assert resolve_access(USER, role, Page.ADMIN) is expected


def test_report_page_allows_any_signed_in_user():
    assert resolve_access(USER, Role.STAFF, Page.REPORT) is Access.ALLOW
    assert resolve_access(USER, None, Page.REPORT) is Access.ALLOW


def test_default_page_redirect_target():
    assert redirect_location(Access.DEFAULT_PAGE) == "/report"
    assert redirect_location(Access.ALLOW) is None
