# dwreport/api/v1/endpoints/users.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from dwreport.core.access import Page, redirect_location, resolve_access
from dwreport.core.config import settings
from dwreport.core.exceptions import IdentityError
from dwreport.core.security import (
    SessionContext, get_current_profile, get_current_session, get_session_context, session_cache,
)
from dwreport.schemas import user as user_schema
from dwreport.services.identity import get_identity

router = APIRouter()


@router.get("/me", response_model=user_schema.Profile)
def read_user_me(profile: user_schema.Profile = Depends(get_current_profile)):
    """
    Get the profile of the currently signed-in user.
    """
    return profile


@router.get("/me/access", response_model=user_schema.AccessDecision)
def read_user_access(page: Page, ctx: Optional[SessionContext] = Depends(get_session_context)):
    """
    Tells a client shell whether to show `page` or where to redirect.
    """
    decision = resolve_access(ctx.user if ctx else None, ctx.role if ctx else None, page)
    return user_schema.AccessDecision(page=page.value, access=decision.value, location=redirect_location(decision))


@router.get("/departments")
def read_departments(ctx: SessionContext = Depends(get_current_session)):
    """Department choices for the report form and the admin filter."""
    return {"departments": list(settings.DEPARTMENTS)}


@router.put("/me/password", status_code=status.HTTP_204_NO_CONTENT)
def update_user_password(
    passwords: user_schema.PasswordUpdate,
    ctx: SessionContext = Depends(get_current_session),
    identity=Depends(get_identity),
):
    """
    Allows a signed-in user to change their own password.
    """
    if not ctx.user.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Not signed in.")
    try:
        identity.sign_in(ctx.user.email, passwords.current_password)
    except IdentityError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect.")

    if len(passwords.new_password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"New password must be at least {settings.MIN_PASSWORD_LENGTH} characters.",
        )
    try:
        identity.update_own_password(ctx.token, passwords.new_password)
    except IdentityError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    session_cache.invalidate_user(ctx.user.id)
    return
