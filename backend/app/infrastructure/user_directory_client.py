"""Remote User Directory Client — fetches the fixed remote user list over HTTP.

Invariants:
    - One GET per fetch_users() call: no retry, no pagination, no auth
    - Non-2xx, transport failure, bad JSON and bad shape all raise TransportError
    - Returned users keep remote order; validation happens in the store

Design Decisions:
    - httpx.AsyncClient owned by the client unless injected: tests pass a
      MockTransport-backed client, production builds one with the configured timeout
    - Error mapping mirrors the resilient API wrapper pattern, minus the retry loop
"""

import logging

import httpx
from pydantic import ValidationError as PydanticValidationError

from app.core.domain_types import User
from app.core.errors import ErrorContext, TransportError
from app.schemas.user import RemoteUserList

logger = logging.getLogger(__name__)

DEFAULT_USERS_URL = "https://jsonplaceholder.typicode.com/users"


class HttpUserDirectoryClient:
    """UserDirectoryClient over httpx."""

    def __init__(
        self,
        url: str = DEFAULT_USERS_URL,
        timeout_seconds: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def fetch_users(self) -> list[User]:
        context = ErrorContext(operation="fetch_users")
        try:
            response = await self._http.get(
                self.url, headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"HTTP {e.response.status_code} from {self.url}", "http_status",
                context=context,
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Timed out calling {self.url}", "timeout", context=context,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(
                f"Network error calling {self.url}: {e}", "connection_error",
                context=context,
            ) from e

        try:
            payload = RemoteUserList.validate_json(response.content)
        except PydanticValidationError as e:
            raise TransportError(
                f"Undecodable user list from {self.url}: {e.error_count()} error(s)",
                "decode_error", context=context,
            ) from e

        logger.info(f"Fetched {len(payload)} remote users", extra={"count": len(payload)})
        return [p.to_user() for p in payload]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()
