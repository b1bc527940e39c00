"""Discovery entry point holding the latest topology snapshot."""

from __future__ import annotations

import asyncio
import time

from loguru import logger

from meshtopo.devscan.events import EventSink
from meshtopo.devscan.models import Link, Node, TopologyGraph
from meshtopo.devscan.scheduler import ScanSession
from meshtopo.devscan.transport import BaseTransport
from meshtopo.exceptions import DiscoveryInProgressError, DiscoveryTimeoutError


class TopologyDiscovery:
    """Run devscan crawls against a mesh and keep the most recent result.

    Only one run may be active at a time; each run gets a fresh ScanSession.
    """

    def __init__(
        self,
        transport: BaseTransport,
        on_event: EventSink | None = None,
        max_concurrency: int | None = None,
        run_timeout: float | None = None,
    ):
        """
        Args:
            transport: Request primitive used for every devscan.
            on_event: Diagnostic event sink (default: log via loguru).
            max_concurrency: Cap on simultaneous requests (default: unbounded).
            run_timeout: Seconds before a whole run is abandoned (default: none).
        """
        self.transport = transport
        self.on_event = on_event
        self.max_concurrency = max_concurrency
        self.run_timeout = run_timeout
        self._session: ScanSession | None = None
        self._last_result = TopologyGraph()

    @property
    def scanning(self) -> bool:
        return self._session is not None

    @property
    def last_result(self) -> TopologyGraph:
        return self._last_result

    def _next_version(self) -> int:
        """Millisecond timestamp, bumped if the clock has not advanced since the last run."""
        return max(int(time.time() * 1000), self._last_result.version + 1)

    async def _run(self, session: ScanSession) -> tuple[list[Node], list[Link]]:
        if self.run_timeout is None:
            return await session.run()
        try:
            return await asyncio.wait_for(session.run(), timeout=self.run_timeout)
        except asyncio.TimeoutError:
            session.cancel()
            logger.warning(
                f"Discovery from [{session.coordinator}] timed out after {self.run_timeout}s "
                f"({session.in_flight} request(s) in flight)"
            )
            raise DiscoveryTimeoutError(f"Discovery did not complete within {self.run_timeout}s") from None

    async def discover(self, coordinator: str) -> TopologyGraph:
        """Crawl the mesh starting at the coordinator and return the topology graph.

        Raises:
            DiscoveryInProgressError: Another run is still active.
            DiscoveryTimeoutError: run_timeout elapsed before quiescence.
            MalformedAddressError: The coordinator address does not normalize.
        """
        if self._session is not None:
            raise DiscoveryInProgressError(f"Discovery from [{self._session.coordinator}] is still running")

        session = ScanSession(
            coordinator,
            self.transport,
            on_event=self.on_event,
            max_concurrency=self.max_concurrency,
        )
        self._session = session
        try:
            async with self.transport:
                nodes, links = await self._run(session)
        finally:
            self._session = None

        self._last_result = TopologyGraph(version=self._next_version(), nodes=nodes, links=links)
        return self._last_result

    def discover_sync(self, coordinator: str) -> TopologyGraph:
        """Synchronous entry point."""
        return asyncio.run(self.discover(coordinator))
