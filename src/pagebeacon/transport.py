"""HTTP client for the collector API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Collector routes
CREATE_SESSION_ROUTE = "/api/session"
CHECK_PARTICIPANT_CODE_ROUTE = "/api/check-participant-code"
PARTICIPANT_CONFIG_ROUTE = "/api/participant-config"
POST_EVENT_ROUTE = "/api/event"
CHANNEL_SOURCE_ROUTE = "/api/participant-channel-source"

# Failure code meaning the collector already stored the event
EVENT_ALREADY_EXISTS_OK = "EVENT_ALREADY_EXISTS_OK"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    kind: str = "Success"


@dataclass(frozen=True)
class Failure:
    message: str
    code: str | None = None
    kind: str = "Failure"


Maybe = Success[T] | Failure


def _interpret(response: httpx.Response) -> Maybe[Any]:
    """Map a collector response body onto Success / Failure."""
    try:
        body = response.json()
    except ValueError:
        return Failure(f"HTTP {response.status_code}: response is not JSON")

    if not isinstance(body, dict):
        return Failure(f"HTTP {response.status_code}: unexpected response shape")

    if body.get("kind") == "Success" and response.is_success:
        return Success(body.get("value"))

    if body.get("kind") == "Failure":
        return Failure(
            message=str(body.get("message", "")),
            code=str(body["code"]) if body.get("code") else None,
        )

    return Failure(f"HTTP {response.status_code}: unexpected response kind {body.get('kind')!r}")


class CollectorClient:
    """
    Thin async wrapper over the collector routes.

    Never raises on network or protocol errors: every call returns a
    ``Success`` or a ``Failure`` so callers decide what is retryable.
    """

    def __init__(
        self,
        api_url: str,
        timeout: float = 10.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def request(
        self,
        method: str,
        route: str,
        headers: dict[str, str],
        json: Any = None,
        params: dict[str, str] | None = None,
        api_url: str | None = None,
    ) -> Maybe[Any]:
        url = f"{(api_url or self.api_url).rstrip('/')}{route}"
        try:
            response = await self._http.request(method, url, json=json, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.debug("%s %s failed: %s", method, url, e)
            return Failure(f"Network error: {e}")

        return _interpret(response)

    async def create_session(self, headers: dict[str, str]) -> Maybe[Any]:
        return await self.request("POST", CREATE_SESSION_ROUTE, headers, json={})

    async def check_participant_code(self, code: str, headers: dict[str, str]) -> Maybe[Any]:
        return await self.request("POST", CHECK_PARTICIPANT_CODE_ROUTE, headers, json={"code": code})

    async def get_participant_config(self, headers: dict[str, str]) -> Maybe[Any]:
        return await self.request("GET", PARTICIPANT_CONFIG_ROUTE, headers, params={})

    async def post_event(
        self,
        payload: dict[str, Any],
        headers: dict[str, str],
        api_url: str | None = None,
    ) -> Maybe[Any]:
        return await self.request("POST", POST_EVENT_ROUTE, headers, json=payload, api_url=api_url)

    async def get_channel_source(self, headers: dict[str, str], force: bool = False) -> Maybe[Any]:
        params = {"force": "true"} if force else {}
        return await self.request("GET", CHANNEL_SOURCE_ROUTE, headers, params=params)

    async def aclose(self) -> None:
        await self._http.aclose()
