# dwreport/api/v1/endpoints/admin.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from dwreport.core.exceptions import AccountConflict, IdentityError, StoreError, ValidationError
from dwreport.core.security import SessionContext, get_current_admin, session_cache
from dwreport.db import queries, session
from dwreport.schemas import user as user_schema
from dwreport.services import accounts
from dwreport.services.identity import get_identity

router = APIRouter()


@router.get("/users", response_model=user_schema.ProfileList)
def get_all_users(
    db: Session = Depends(session.get_db),
    admin: SessionContext = Depends(get_current_admin),
):
    """ Retrieves every staff profile, ordered by name. """
    try:
        profiles = queries.list_profiles(db)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    return {"users": [user_schema.Profile.model_validate(p) for p in profiles]}


@router.post("/users")
def create_user(
    user_in: user_schema.UserCreate,
    db: Session = Depends(session.get_db),
    identity=Depends(get_identity),
    admin: SessionContext = Depends(get_current_admin),
):
    """ Creates the identity-provider account and its linked profile. """
    try:
        user_id = accounts.create_account(db, identity, user_in)
    except AccountConflict as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    except (IdentityError, StoreError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    # a pre-existing identity may have a cached session without this profile
    session_cache.invalidate_user(user_id)
    return {"ok": True, "userId": user_id}


@router.put("/users/{profile_id}")
def update_user_details(
    profile_id: str,
    updates: user_schema.ProfileUpdate,
    db: Session = Depends(session.get_db),
    identity=Depends(get_identity),
    admin: SessionContext = Depends(get_current_admin),
):
    """ Applies a partial update to a profile and, if needed, its identity. """
    try:
        db_profile = queries.get_profile(db, profile_id)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if not db_profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    auth_user_id = db_profile.auth_user_id
    try:
        accounts.update_account(db, identity, db_profile, updates)
    except (IdentityError, StoreError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    finally:
        session_cache.invalidate_user(auth_user_id)
    return {"ok": True}


@router.post("/set-password")
def reset_user_password(
    password_in: user_schema.PasswordReset,
    identity=Depends(get_identity),
    admin: SessionContext = Depends(get_current_admin),
):
    """ Force-sets the password of any identity. """
    try:
        accounts.set_password(identity, password_in.user_id.strip(), password_in.new_password)
    except (IdentityError, ValidationError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    return {"ok": True}
