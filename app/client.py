# Async API client for the relief API (frontends, scripts, integration tests)
#
# Every call goes through retry_request: on failure wait `delay`, double it, try
# again, and re-raise once attempts run out. Retrying is the client's business;
# the server never retries on its own.

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 3
DEFAULT_DELAY_SEC = 1.0
DELETE_DELAY_SEC = 2.0
REQUEST_TIMEOUT_SEC = 30.0


class ApiError(Exception):
    """Non-2xx answer from the API. `detail` is the server's message."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail

    @property
    def retryable(self) -> bool:
        """Server-side or throttling failures; other 4xx answers will not change on retry."""
        return self.status_code >= 500 or self.status_code in (408, 429)


class SessionExpiredError(ApiError):
    """401: the stored token is no longer valid."""


async def retry_request(
    fn: Callable[[], Awaitable[T]],
    retries: int = DEFAULT_RETRIES,
    delay: float = DEFAULT_DELAY_SEC,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run `fn`, retrying up to `retries` more times with exponential backoff."""
    while True:
        try:
            return await fn()
        except (ApiError, httpx.HTTPError) as exc:
            if retries <= 0 or (isinstance(exc, ApiError) and not exc.retryable):
                raise
            logger.warning("Request failed (%s); retrying in %.1fs, %d retries left", exc, delay, retries)
            await sleep(delay)
            retries -= 1
            delay *= 2


def _error_detail(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or "Server error occurred"
    if isinstance(data, dict):
        detail = data.get("detail") or data.get("message") or data.get("error")
        if detail:
            return detail if isinstance(detail, str) else str(detail)
    return "Server error occurred"


class ReliefClient:
    """
    Thin wrapper over the REST API. Pass `transport` (e.g. httpx.MockTransport
    or an ASGI transport) to talk to something other than the network.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retries: int = DEFAULT_RETRIES,
        delay: float = DEFAULT_DELAY_SEC,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.token = token
        self.retries = retries
        self.delay = delay
        self._sleep = sleep
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=REQUEST_TIMEOUT_SEC,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "ReliefClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        resp = await self._http.request(method, url, headers=headers, **kwargs)
        if resp.status_code == 401:
            self.token = None
            raise SessionExpiredError(401, _error_detail(resp))
        if resp.status_code >= 400:
            raise ApiError(resp.status_code, _error_detail(resp))
        return resp.json()

    async def _call(self, method: str, url: str, delay: Optional[float] = None, **kwargs) -> Any:
        return await retry_request(
            lambda: self._request(method, url, **kwargs),
            retries=self.retries,
            delay=self.delay if delay is None else delay,
            sleep=self._sleep,
        )

    # users

    async def register(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        data = await self._call("POST", "/users/register", json=user_data)
        self.token = data["access_token"]
        return data["user"]

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._call("POST", "/users/login", json={"email": email, "password": password})
        self.token = data["access_token"]
        return data["user"]

    async def profile(self) -> Dict[str, Any]:
        return await self._call("GET", "/users/profile")

    async def update_profile(self, user_id: int, updates: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call("PATCH", f"/users/{user_id}", json=updates)

    async def add_volunteer_skills(self, user_id: int, skills: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await self._call("POST", f"/users/{user_id}/skills", json={"skills": skills})

    async def add_assistance_request(self, user_id: int, request: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call("POST", f"/users/{user_id}/assistance", json=request)

    async def add_temporary_housing(self, user_id: int, housing: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call("POST", f"/users/{user_id}/housing", json=housing)

    # carpools

    async def create_carpool(self, carpool_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call("POST", "/carpools", json=carpool_data)

    async def list_carpools(self, **filters) -> Dict[str, Any]:
        params = {k: v for k, v in filters.items() if v is not None}
        return await self._call("GET", "/carpools", params=params)

    async def join_carpool(self, carpool_id: int) -> Dict[str, Any]:
        return await self._call("POST", f"/carpools/{carpool_id}/join", json={})

    async def leave_carpool(self, carpool_id: int, user_id: Optional[int] = None) -> Dict[str, Any]:
        return await self._call("POST", f"/carpools/{carpool_id}/leave", json={"user_id": user_id})

    async def delete_carpool(self, carpool_id: int) -> Dict[str, Any]:
        return await self._call("DELETE", f"/carpools/{carpool_id}", delay=DELETE_DELAY_SEC)


class CarpoolCache:
    """
    Client-side copy of the carpool list. Filled by explicit refresh() calls
    and patched with the carpool each mutation returns.
    """

    def __init__(self, client: ReliefClient):
        self.client = client
        self.carpools: Dict[int, Dict[str, Any]] = {}

    async def refresh(self, **filters) -> List[Dict[str, Any]]:
        page = await self.client.list_carpools(**filters)
        self.carpools = {c["id"]: c for c in page["items"]}
        return list(self.carpools.values())

    async def add(self, carpool_data: Dict[str, Any]) -> Dict[str, Any]:
        carpool = await self.client.create_carpool(carpool_data)
        self.carpools[carpool["id"]] = carpool
        return carpool

    async def join(self, carpool_id: int) -> bool:
        """False instead of raising, so callers can show a "could not join" message."""
        try:
            carpool = await self.client.join_carpool(carpool_id)
        except ApiError as exc:
            logger.warning("Error joining carpool %s: %s", carpool_id, exc)
            return False
        self.carpools[carpool_id] = carpool
        return True

    async def leave(self, carpool_id: int, user_id: Optional[int] = None) -> Dict[str, Any]:
        carpool = await self.client.leave_carpool(carpool_id, user_id)
        self.carpools[carpool_id] = carpool
        return carpool

    async def delete(self, carpool_id: int) -> None:
        await self.client.delete_carpool(carpool_id)
        self.carpools.pop(carpool_id, None)

    def for_user(self, user_id: int) -> List[Dict[str, Any]]:
        """Carpools the user drives or rides in."""
        return [
            c for c in self.carpools.values()
            if c["driver_id"] == user_id or user_id in c.get("current_passengers", [])
        ]
