# dwreport/services/accounts.py
# Admin account operations that span the identity provider and the profile table.
import logging

from sqlalchemy.orm import Session

from dwreport.core.exceptions import (
    AccountConflict, IdentityConflict, IdentityError, StoreError, ValidationError,
)
from dwreport.db import models, queries
from dwreport.schemas.user import ProfileUpdate, UserCreate

logger = logging.getLogger(__name__)


def create_account(db: Session, identity, user_in: UserCreate) -> str:
    """
    Creates the identity, then the linked profile, and returns the identity id.

    The two calls are not jointly atomic: when the profile write fails, an
    identity created here is deleted again. An identity that already existed
    before this call is left alone and the failure is reported as a conflict.
    """
    created = True
    try:
        user = identity.create_user(
            user_in.email,
            user_in.password,
            user_metadata={"name": user_in.name, "department": user_in.department},
            app_metadata={"role": user_in.role.value},
        )
    except IdentityConflict:
        created = False
        user = identity.find_user_by_email(user_in.email)
        if user is None:
            raise AccountConflict("User exists but could not be fetched")

    try:
        queries.upsert_profile(
            db,
            user.id,
            email=user_in.email,
            name=user_in.name or user.user_metadata.get("name"),
            employee_id=user_in.employee_id,
            designation=user_in.designation,
            department=user_in.department,
            role=user_in.role.value,
            active=user_in.active,
        )
    except StoreError as exc:
        if not created:
            raise AccountConflict(f"Identity already exists but profile link failed: {exc.message}") from exc
        logger.warning("Profile insert for %s failed, removing identity %s", user_in.email, user.id)
        try:
            identity.delete_user(user.id)
        except IdentityError as cleanup_exc:
            logger.error("Could not remove orphaned identity %s: %s", user.id, cleanup_exc.message)
        raise

    logger.info("Created account %s (%s)", user.id, user_in.email)
    return user.id


def update_account(db: Session, identity, profile: models.Profile, updates: ProfileUpdate) -> models.Profile:
    changes = updates.profile_changes()
    if changes:
        profile = queries.update_profile(db, profile, changes)
    identity_changes = updates.identity_changes()
    if identity_changes:
        identity.update_user_by_id(profile.auth_user_id, **identity_changes)
    logger.info("Updated profile %s: %s", profile.id, sorted([*changes, *identity_changes]))
    return profile


def set_password(identity, auth_user_id: str, new_password: str) -> None:
    if not auth_user_id:
        raise ValidationError("userId is required")
    identity.update_user_by_id(auth_user_id, password=new_password)
    logger.info("Password reset for identity %s", auth_user_id)
