"""Connectivity Monitor — level-triggered network availability signal.

Invariants:
    - is_available starts False and only publishes on change (distinct-until-changed)
    - The probe loop never raises: any probe failure reads as "unavailable"
    - stop() cancels the probe task and waits for it to finish

Design Decisions:
    - HTTP HEAD probe against the remote directory host: the only network that matters
      to this service is the one serving the user list
    - set_available() is public so other signal sources (and tests) can drive the level
"""

import asyncio
import contextlib
import logging

import httpx

from app.core.event_stream import StateStream

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """NetworkMonitor that polls a URL on an interval."""

    def __init__(
        self,
        probe_url: str,
        interval_seconds: float = 10.0,
        timeout_seconds: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.probe_url = probe_url
        self.interval_seconds = interval_seconds
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self.is_available: StateStream[bool] = StateStream(False, name="connectivity")
        self._task: asyncio.Task | None = None

    def set_available(self, available: bool) -> None:
        if available == self.is_available.value:
            return
        logger.info(
            f"Network {'available' if available else 'unavailable'}",
            extra={"available": available},
        )
        self.is_available.publish(available)

    async def probe(self) -> bool:
        try:
            await self._http.head(self.probe_url)
        except httpx.HTTPError as e:
            logger.debug(f"Connectivity probe failed: {e}")
            return False
        # Any HTTP answer, even 4xx/5xx, proves the network path is up
        return True

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="connectivity-probe")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def aclose(self) -> None:
        await self.stop()
        if self._owns_client:
            await self._http.aclose()

    async def _run(self) -> None:
        while True:
            self.set_available(await self.probe())
            await asyncio.sleep(self.interval_seconds)
