# dwreport/client.py
"""
Async client for the report API, plus the view state a UI keeps on top of it.

`ReportViewState` keys every in-flight load by the filters that produced it:
a response that arrives after the filters changed, or after the view was
closed, is dropped instead of overwriting newer state.
"""
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

import httpx

from dwreport.core.access import CHECKING_PLACEHOLDER, UNRESOLVED, Access, Page, resolve_access
from dwreport.schemas.report import ReportView

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ViewStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class ReportFilters:
    date_from: date
    date_to: date
    name: str = ""
    department: str = "All"

    def params(self) -> dict:
        params = {"date_from": self.date_from.isoformat(), "date_to": self.date_to.isoformat()}
        if self.name.strip():
            params["name"] = self.name.strip()
        if self.department and self.department != "All":
            params["department"] = self.department
        return params


class ApiClient:
    def __init__(self, base_url: str, token: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(base_url=base_url, headers=headers, transport=transport, timeout=30)

    async def aclose(self):
        await self._client.aclose()

    async def _get(self, path: str, params: Optional[dict] = None) -> httpx.Response:
        response = await self._client.get(path, params=params)
        if response.is_error:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = None
            raise ApiError(str(detail or response.text or response.status_code), response.status_code)
        return response

    async def access(self, page: Page) -> Access:
        data = (await self._get("/api/v1/users/me/access", {"page": page.value})).json()
        return Access(data["access"])

    async def report_view(self, filters: ReportFilters) -> ReportView:
        data = (await self._get("/api/v1/admin/reports", filters.params())).json()
        return ReportView.model_validate(data)

    async def export_csv(self, filters: ReportFilters, view: str = "detailed") -> str:
        params = {**filters.params(), "view": view}
        return (await self._get("/api/v1/admin/reports/export", params)).text


class ReportViewState:
    def __init__(self, client: ApiClient):
        self.client = client
        self.filters: Optional[ReportFilters] = None
        self.status = ViewStatus.IDLE
        self.view = ReportView()
        self.error: Optional[str] = None
        self._closed = False

    def _is_current(self, filters: ReportFilters) -> bool:
        return not self._closed and filters == self.filters

    async def load(self, filters: ReportFilters) -> bool:
        """Returns False when the response was discarded as stale."""
        self.filters = filters
        self.status = ViewStatus.LOADING
        self.error = None
        try:
            view = await self.client.report_view(filters)
        except (ApiError, httpx.HTTPError) as exc:
            if not self._is_current(filters):
                return False
            self.status = ViewStatus.ERROR
            self.error = getattr(exc, "message", None) or str(exc) or "Failed to load"
            self.view = ReportView()
            return True
        if not self._is_current(filters):
            logger.debug("Dropping stale report response for %s", filters)
            return False
        self.view = view
        self.status = ViewStatus.READY if view.detailed or view.grouped else ViewStatus.EMPTY
        return True

    def close(self):
        """Navigation away: pending loads finish silently."""
        self._closed = True


class AccessGuard:
    """Holds a page's gate decision; protected content is hidden until it resolves."""

    def __init__(self, client: ApiClient, page: Page):
        self.client = client
        self.page = page
        self.decision = resolve_access(UNRESOLVED, UNRESOLVED, page)

    async def resolve(self) -> Access:
        try:
            self.decision = await self.client.access(self.page)
        except (ApiError, httpx.HTTPError) as exc:
            logger.warning("Access check failed: %s", exc)
            self.decision = Access.LOGIN
        return self.decision

    def render(self, content: str) -> str:
        if self.decision is Access.CHECKING:
            return CHECKING_PLACEHOLDER
        if self.decision is Access.ALLOW:
            return content
        return ""
