# dwreport/services/identity.py
# Client for the hosted identity provider (GoTrue-compatible REST API).
import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from dwreport.core.config import settings
from dwreport.core.exceptions import IdentityConflict, IdentityError

logger = logging.getLogger(__name__)

PAGE_SIZE = 200


@dataclass
class IdentityUser:
    id: str
    email: Optional[str] = None
    user_metadata: dict = field(default_factory=dict)
    app_metadata: dict = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict) -> "IdentityUser":
        return cls(
            id=str(data["id"]),
            email=data.get("email"),
            user_metadata=data.get("user_metadata") or {},
            app_metadata=data.get("app_metadata") or {},
        )


@dataclass
class AuthSession:
    access_token: str
    token_type: str
    user: IdentityUser
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Identity provider returned {response.status_code}"
    for key in ("msg", "message", "error_description", "error"):
        if isinstance(body, dict) and body.get(key):
            return str(body[key])
    return f"Identity provider returned {response.status_code}"


class IdentityClient:
    def __init__(
        self,
        base_url: str = settings.SUPABASE_URL,
        anon_key: str = settings.SUPABASE_ANON_KEY,
        service_key: str = settings.SUPABASE_SERVICE_ROLE_KEY,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30,
    ):
        self.anon_key = anon_key
        self.service_key = service_key
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + "/auth/v1",
            transport=transport,
            timeout=timeout,
        )

    def close(self):
        self._client.close()

    # --- request helpers ---

    def _headers(self, token: Optional[str] = None, admin: bool = False) -> dict:
        key = self.service_key if admin else self.anon_key
        return {
            "apikey": key,
            "Authorization": f"Bearer {token or key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, *, token=None, admin=False, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, path, headers=self._headers(token, admin), **kwargs)
        except httpx.RequestError as exc:
            logger.error("Identity provider unreachable: %s", exc)
            raise IdentityError(f"Identity provider unreachable: {exc}", status_code=503) from exc
        if response.is_error:
            raise IdentityError(_error_message(response), status_code=response.status_code)
        return response

    # --- session operations ---

    def sign_in(self, email: str, password: str) -> AuthSession:
        data = self._request(
            "POST", "/token", params={"grant_type": "password"},
            json={"email": email, "password": password},
        ).json()
        return AuthSession(
            access_token=data["access_token"],
            token_type=data.get("token_type", "bearer"),
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            user=IdentityUser.from_json(data["user"]),
        )

    def sign_out(self, access_token: str) -> None:
        self._request("POST", "/logout", token=access_token)

    def get_user(self, access_token: str) -> IdentityUser:
        return IdentityUser.from_json(self._request("GET", "/user", token=access_token).json())

    def update_own_password(self, access_token: str, password: str) -> None:
        self._request("PUT", "/user", token=access_token, json={"password": password})

    # --- admin operations (service role) ---

    def create_user(self, email: str, password: str, user_metadata=None, app_metadata=None) -> IdentityUser:
        try:
            data = self._request(
                "POST", "/admin/users", admin=True,
                json={
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": user_metadata or {},
                    "app_metadata": app_metadata or {},
                },
            ).json()
        except IdentityError as exc:
            if exc.status_code == 422 or "already registered" in exc.message.lower():
                raise IdentityConflict(exc.message, status_code=exc.status_code) from exc
            raise
        return IdentityUser.from_json(data.get("user", data))

    def get_user_by_id(self, user_id: str) -> Optional[IdentityUser]:
        try:
            data = self._request("GET", f"/admin/users/{user_id}", admin=True).json()
        except IdentityError as exc:
            if exc.status_code == 404:
                return None
            raise
        return IdentityUser.from_json(data.get("user", data))

    def list_users(self, page: int = 1, per_page: int = PAGE_SIZE) -> list[IdentityUser]:
        data = self._request(
            "GET", "/admin/users", admin=True, params={"page": page, "per_page": per_page},
        ).json()
        users = data.get("users", []) if isinstance(data, dict) else data
        return [IdentityUser.from_json(u) for u in users]

    def find_user_by_email(self, email: str) -> Optional[IdentityUser]:
        target = email.lower()
        page = 1
        while True:
            users = self.list_users(page=page)
            for user in users:
                if (user.email or "").lower() == target:
                    return user
            if len(users) < PAGE_SIZE:
                return None
            page += 1

    def update_user_by_id(self, user_id: str, **attributes) -> IdentityUser:
        data = self._request("PUT", f"/admin/users/{user_id}", admin=True, json=attributes).json()
        return IdentityUser.from_json(data.get("user", data))

    def delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/admin/users/{user_id}", admin=True)


_client: Optional[IdentityClient] = None


def get_identity() -> IdentityClient:
    global _client
    if _client is None:
        _client = IdentityClient()
    return _client
