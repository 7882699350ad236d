import pytest

from dwreport.core.exceptions import StoreError
from dwreport.db import models, queries

from conftest import auth, make_profile


@pytest.fixture
def admin_token(db, identity):
    _, token = make_profile(db, identity, "boss@corp.com", role="admin", name="Boss")
    return token


def test_admin_routes_need_a_session(client):
    assert client.get("/api/v1/admin/users").status_code == 401
    assert client.get("/api/v1/admin/reports").status_code == 401


def test_staff_are_refused_admin_routes(client, db, identity):
    _, token = make_profile(db, identity, "staff@corp.com")

    response = client.get("/api/v1/admin/users", headers=auth(token))

    assert response.status_code == 403
    assert response.json()["detail"] == "Admin only"


def test_identity_without_profile_is_refused(client, identity):
    token = identity.token_for(identity.add_user("loose@corp.com"))
    assert client.get("/api/v1/admin/users", headers=auth(token)).status_code == 403
    assert client.get("/api/v1/users/me", headers=auth(token)).json()["detail"] == "Could not load your profile."


def test_list_users_ordered_by_name(client, db, identity, admin_token):
    make_profile(db, identity, "z@corp.com", name="Zubair")
    make_profile(db, identity, "a@corp.com", name="Anika")

    response = client.get("/api/v1/admin/users", headers=auth(admin_token))

    assert response.status_code == 200
    names = [u["name"] for u in response.json()["users"]]
    assert names == ["Anika", "Boss", "Zubair"]


def test_create_user_links_identity_and_profile(client, db, identity, admin_token):
    response = client.post(
        "/api/v1/admin/users",
        headers=auth(admin_token),
        json={
            "email": "new@corp.com", "password": "secret1", "name": "New Hire",
            "employeeId": "E-42", "department": "Sales", "role": "staff",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    profile = queries.get_profile_by_auth_id(db, body["userId"])
    assert profile.email == "new@corp.com"
    assert profile.employee_id == "E-42"
    assert profile.role == "staff"
    assert identity.users[body["userId"]].app_metadata == {"role": "staff"}


def test_profile_failure_removes_the_new_identity(client, identity, admin_token, monkeypatch):
    def broken_upsert(db, auth_user_id, **fields):
        raise StoreError("duplicate key value violates unique constraint")

    monkeypatch.setattr(queries, "upsert_profile", broken_upsert)

    response = client.post(
        "/api/v1/admin/users",
        headers=auth(admin_token),
        json={"email": "ghost@corp.com", "password": "secret1", "name": "Ghost"},
    )

    assert response.status_code == 400
    assert "duplicate key" in response.json()["detail"]
    assert identity.find_user_by_email("ghost@corp.com") is None
    assert len(identity.deleted) == 1


def test_existing_identity_is_linked_instead_of_recreated(client, db, identity, admin_token):
    existing = identity.add_user("prior@corp.com")

    response = client.post(
        "/api/v1/admin/users",
        headers=auth(admin_token),
        json={"email": "prior@corp.com", "password": "secret1", "name": "Prior"},
    )

    assert response.status_code == 200
    assert response.json()["userId"] == existing.id
    assert queries.get_profile_by_auth_id(db, existing.id).name == "Prior"


def test_existing_identity_with_failing_profile_is_a_conflict(client, identity, admin_token, monkeypatch):
    identity.add_user("prior@corp.com")

    def broken_upsert(db, auth_user_id, **fields):
        raise StoreError("permission denied for table profiles")

    monkeypatch.setattr(queries, "upsert_profile", broken_upsert)

    response = client.post(
        "/api/v1/admin/users",
        headers=auth(admin_token),
        json={"email": "prior@corp.com", "password": "secret1"},
    )

    assert response.status_code == 409
    assert identity.deleted == []


def test_create_user_rejects_bad_input(client, admin_token):
    response = client.post(
        "/api/v1/admin/users",
        headers=auth(admin_token),
        json={"email": "not-an-email", "password": "secret1"},
    )
    assert response.status_code == 400


def test_partial_update_touches_only_sent_fields(client, db, identity, admin_token):
    profile, _ = make_profile(db, identity, "clerk@corp.com", name="Clerk", department="HR", designation="Officer")

    response = client.put(
        f"/api/v1/admin/users/{profile.id}",
        headers=auth(admin_token),
        json={"department": "Sales", "name": None},
    )

    assert response.status_code == 200
    db.expire_all()
    stored = db.get(models.Profile, profile.id)
    assert stored.department == "Sales"
    assert stored.name == "Clerk"
    assert stored.designation == "Officer"


def test_update_can_promote_and_change_login(client, db, identity, admin_token):
    profile, _ = make_profile(db, identity, "clerk@corp.com")

    response = client.put(
        f"/api/v1/admin/users/{profile.id}",
        headers=auth(admin_token),
        json={"role": "admin", "email": "clerk2@corp.com", "newPassword": "another1"},
    )

    assert response.status_code == 200
    db.expire_all()
    assert db.get(models.Profile, profile.id).role == "admin"
    user = identity.users[profile.auth_user_id]
    assert user.email == "clerk2@corp.com"
    assert identity.passwords[user.id] == "another1"


def test_update_unknown_profile_is_404(client, admin_token):
    response = client.put("/api/v1/admin/users/missing", headers=auth(admin_token), json={"name": "X"})
    assert response.status_code == 404


def test_update_refuses_unknown_fields(client, db, identity, admin_token):
    profile, _ = make_profile(db, identity, "clerk@corp.com")
    response = client.put(f"/api/v1/admin/users/{profile.id}", headers=auth(admin_token), json={"salary": 1})
    assert response.status_code == 400


def test_role_change_takes_effect_on_next_request(client, db, identity, admin_token):
    profile, token = make_profile(db, identity, "rising@corp.com")
    assert client.get("/api/v1/admin/users", headers=auth(token)).status_code == 403

    client.put(f"/api/v1/admin/users/{profile.id}", headers=auth(admin_token), json={"role": "admin"})

    assert client.get("/api/v1/admin/users", headers=auth(token)).status_code == 200


def test_set_password(client, db, identity, admin_token):
    profile, _ = make_profile(db, identity, "clerk@corp.com")

    response = client.post(
        "/api/v1/admin/set-password",
        headers=auth(admin_token),
        json={"userId": profile.auth_user_id, "newPassword": "fresh-pass"},
    )

    assert response.status_code == 200
    assert identity.passwords[profile.auth_user_id] == "fresh-pass"


def test_set_password_validates_length(client, db, identity, admin_token):
    profile, _ = make_profile(db, identity, "clerk@corp.com")

    response = client.post(
        "/api/v1/admin/set-password",
        headers=auth(admin_token),
        json={"userId": profile.auth_user_id, "newPassword": "123"},
    )

    assert response.status_code == 400
    assert identity.passwords[profile.auth_user_id] == "secret1"


def test_set_password_for_unknown_identity(client, admin_token):
    response = client.post(
        "/api/v1/admin/set-password",
        headers=auth(admin_token),
        json={"userId": "nobody", "newPassword": "fresh-pass"},
    )
    assert response.status_code == 400


def test_set_password_needs_a_user_id(client, admin_token):
    response = client.post(
        "/api/v1/admin/set-password",
        headers=auth(admin_token),
        json={"userId": "   ", "newPassword": "fresh-pass"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "userId is required"


def test_linking_an_existing_identity_refreshes_its_session(client, identity, admin_token):
    existing = identity.add_user("waiting@corp.com")
    token = identity.token_for(existing)
    before = client.get("/api/v1/users/me", headers=auth(token))
    assert before.status_code == 403

    created = client.post(
        "/api/v1/admin/users",
        headers=auth(admin_token),
        json={"email": "waiting@corp.com", "password": "secret1", "name": "Waiting", "role": "admin"},
    )
    assert created.status_code == 200

    after = client.get("/api/v1/users/me", headers=auth(token))
    assert after.status_code == 200
    assert after.json()["name"] == "Waiting"
    assert client.get("/api/v1/admin/users", headers=auth(token)).status_code == 200
