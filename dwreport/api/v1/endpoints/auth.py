# dwreport/api/v1/endpoints/auth.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel

from dwreport.core.config import settings
from dwreport.core.exceptions import IdentityError
from dwreport.core.security import get_access_token, session_cache
from dwreport.services.identity import get_identity

logger = logging.getLogger(__name__)

router = APIRouter()


class Token(BaseModel):
    access_token: str
    token_type: str


@router.post("/token", response_model=Token)
def login(
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    identity=Depends(get_identity),
):
    try:
        auth = identity.sign_in(form_data.username, form_data.password)
    except IdentityError as exc:
        logger.info("Sign-in failed for %s: %s", form_data.username, exc.message)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username or password")

    # a fresh sign-in replaces whatever was cached for this user
    session_cache.invalidate_user(auth.user.id)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME, auth.access_token,
        httponly=True, samesite="lax", max_age=auth.expires_in,
    )
    return {"access_token": auth.access_token, "token_type": "bearer"}


@router.post("/signout")
def signout(
    response: Response,
    token: Optional[str] = Depends(get_access_token),
    identity=Depends(get_identity),
):
    if token:
        session_cache.invalidate_token(token)
        try:
            identity.sign_out(token)
        except IdentityError as exc:
            logger.warning("Sign-out at identity provider failed: %s", exc.message)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"ok": True}
