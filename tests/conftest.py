from __future__ import annotations

import itertools
from datetime import date, datetime, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dwreport.core.exceptions import IdentityConflict, IdentityError
from dwreport.core.security import session_cache
from dwreport.db import models, session
from dwreport.main import app
from dwreport.services.identity import AuthSession, IdentityUser, get_identity


class InMemoryIdentity:
    """Stands in for the hosted identity provider."""

    def __init__(self):
        self.users: dict[str, IdentityUser] = {}
        self.passwords: dict[str, str] = {}
        self.tokens: dict[str, str] = {}
        self.deleted: list[str] = []
        self.signed_out: list[str] = []
        self._ids = itertools.count(1)

    def add_user(self, email: str, password: str = "secret1") -> IdentityUser:
        user = IdentityUser(id=f"auth-{next(self._ids)}", email=email)
        self.users[user.id] = user
        self.passwords[user.id] = password
        return user

    def token_for(self, user: IdentityUser) -> str:
        token = f"token-{user.id}-{len(self.tokens)}"
        self.tokens[token] = user.id
        return token

    def sign_in(self, email, password) -> AuthSession:
        user = self.find_user_by_email(email)
        if user is None or self.passwords[user.id] != password:
            raise IdentityError("Invalid login credentials", status_code=400)
        return AuthSession(access_token=self.token_for(user), token_type="bearer", user=user, expires_in=3600)

    def sign_out(self, access_token):
        self.signed_out.append(access_token)
        self.tokens.pop(access_token, None)

    def get_user(self, access_token) -> IdentityUser:
        user_id = self.tokens.get(access_token)
        if user_id is None or user_id not in self.users:
            raise IdentityError("invalid JWT", status_code=401)
        return self.users[user_id]

    def update_own_password(self, access_token, password):
        self.passwords[self.get_user(access_token).id] = password

    def create_user(self, email, password, user_metadata=None, app_metadata=None) -> IdentityUser:
        if self.find_user_by_email(email) is not None:
            raise IdentityConflict("A user with this email address has already been registered", status_code=422)
        user = self.add_user(email, password)
        user.user_metadata = dict(user_metadata or {})
        user.app_metadata = dict(app_metadata or {})
        return user

    def find_user_by_email(self, email) -> Optional[IdentityUser]:
        for user in self.users.values():
            if (user.email or "").lower() == email.lower():
                return user
        return None

    def get_user_by_id(self, user_id) -> Optional[IdentityUser]:
        return self.users.get(user_id)

    def update_user_by_id(self, user_id, **attributes) -> IdentityUser:
        user = self.users.get(user_id)
        if user is None:
            raise IdentityError("User not found", status_code=404)
        if "email" in attributes:
            user.email = attributes["email"]
        if "password" in attributes:
            self.passwords[user_id] = attributes["password"]
        return user

    def delete_user(self, user_id):
        self.users.pop(user_id, None)
        self.passwords.pop(user_id, None)
        self.deleted.append(user_id)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    SessionTesting = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = SessionTesting()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def identity():
    return InMemoryIdentity()


@pytest.fixture
def client(engine, identity):
    SessionTesting = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = SessionTesting()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[session.get_db] = override_get_db
    app.dependency_overrides[get_identity] = lambda: identity
    session_cache.clear()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        session_cache.clear()


def make_profile(db, identity, email, role="staff", **fields) -> tuple[models.Profile, str]:
    """Creates an identity plus linked profile and returns (profile, bearer token)."""
    user = identity.add_user(email)
    profile = models.Profile(auth_user_id=user.id, email=email, role=role, active=True, **fields)
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile, identity.token_for(user)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def add_report(db, profile, work_date: date, start: tuple[int, int], end: tuple[int, int], **fields):
    day = work_date
    report = models.WorkReport(
        user_id=profile.id if profile is not None else None,
        work_date=day,
        task_description=fields.pop("task_description", "Work"),
        start_time=datetime(day.year, day.month, day.day, *start, tzinfo=timezone.utc),
        end_time=datetime(day.year, day.month, day.day, *end, tzinfo=timezone.utc),
        status=fields.pop("status", "Complete"),
        **fields,
    )
    db.add(report)
    db.commit()
    return report
