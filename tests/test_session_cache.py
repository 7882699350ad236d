import time

from jose import jwt

from dwreport.core.config import settings
from dwreport.core.security import SessionCache, SessionContext, session_cache
from dwreport.services.identity import IdentityUser

from conftest import auth, make_profile


def context(token, user_id="auth-1", expires_at=None):
    return SessionContext(
        token=token,
        user=IdentityUser(id=user_id),
        profile=None,
        expires_at=time.time() + 60 if expires_at is None else expires_at,
    )


def test_expired_entries_are_misses_and_are_evicted():
    cache = SessionCache()
    cache.put(context("old", expires_at=time.time() - 1))

    assert cache.get("old") is None
    assert len(cache) == 0


def test_put_sweeps_expired_entries():
    cache = SessionCache()
    cache.put(context("live"))
    # an entry whose window passed while it sat in the map
    cache._by_token["stale"] = context("stale", expires_at=time.time() - 1)

    cache.put(context("fresh"))

    assert len(cache) == 2
    assert cache.get("live") is not None
    assert cache.get("fresh") is not None


def test_expired_jwt_stops_authenticating_after_a_cached_hit(client, db, identity, monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", "test-secret")
    profile, _ = make_profile(db, identity, "jwt@corp.com", name="Jay")
    claims = {"sub": profile.auth_user_id, "aud": "authenticated"}
    live = jwt.encode({**claims, "exp": int(time.time()) + 300}, "test-secret", algorithm="HS256")
    expired = jwt.encode({**claims, "exp": int(time.time()) - 10}, "test-secret", algorithm="HS256")

    assert client.get("/api/v1/users/me", headers=auth(live)).status_code == 200
    assert session_cache.get(live).expires_at <= int(time.time()) + 300

    # the expired token was served from the cache earlier; its entry carries its exp
    cached = session_cache.get(live)
    session_cache.put(SessionContext(
        token=expired, user=cached.user, profile=cached.profile, expires_at=time.time() - 10,
    ))

    assert client.get("/api/v1/users/me", headers=auth(expired)).status_code == 401


def test_revoked_provider_session_is_rechecked_after_the_cache_window(client, db, identity, monkeypatch):
    monkeypatch.setattr(settings, "SESSION_CACHE_SECONDS", 0)
    _, token = make_profile(db, identity, "me@corp.com", name="Me")

    assert client.get("/api/v1/users/me", headers=auth(token)).status_code == 200

    identity.tokens.pop(token)

    assert client.get("/api/v1/users/me", headers=auth(token)).status_code == 401
