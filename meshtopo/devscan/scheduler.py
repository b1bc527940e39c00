"""Queue-driven devscan crawler for one discovery run."""

from __future__ import annotations

import asyncio
from collections import deque

from loguru import logger

from meshtopo.devscan.address import derive_identifier, normalize
from meshtopo.devscan.events import EventSink, emit
from meshtopo.devscan.models import EventKind, Link, Node, ScanRecord, ScanState, SchedulerState
from meshtopo.devscan.parser import parse_devscan_payload
from meshtopo.devscan.topology import TopologyBuilder
from meshtopo.devscan.transport import BaseTransport
from meshtopo.exceptions import (
    DiscoveryInProgressError,
    MalformedAddressError,
    TransportError,
    TransportTimeout,
)


class ScanSession:
    """All mutable state of a single discovery run.

    Addresses are queued unconditionally and deduplicated when dequeued: an
    address that already has a record (pending, resolved or failed) is never
    dispatched again. Scheduling steps are plain synchronous calls on the
    event loop, so they never interleave; only the transport requests run
    concurrently. The run completes once the queue is empty and no request
    is in flight.
    """

    def __init__(
        self,
        coordinator: str,
        transport: BaseTransport,
        on_event: EventSink | None = None,
        max_concurrency: int | None = None,
    ):
        canonical = normalize(coordinator)
        if canonical is None:
            raise MalformedAddressError(coordinator)

        self.coordinator = canonical
        self.coordinator_id = derive_identifier(canonical)
        self.transport = transport
        self.on_event = on_event
        self.max_concurrency = max_concurrency

        self.state = SchedulerState.IDLE
        self.queue: deque[str] = deque()
        self.records: dict[str, ScanRecord] = {}
        self.lookup: dict[str, str] = {}  # identifier -> first address seen
        self.in_flight = 0
        self.dispatch_count = 0

        self._limiter: asyncio.Semaphore | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._quiescent: asyncio.Event | None = None

    def enqueue(self, address: str) -> None:
        """Queue an address for scanning; duplicates are dropped at dequeue time."""
        self.queue.append(address)

    @property
    def is_quiescent(self) -> bool:
        return not self.queue and self.in_flight == 0

    async def run(self) -> tuple[list[Node], list[Link]]:
        """Crawl from the coordinator until quiescent, then build the topology."""
        if self.state != SchedulerState.IDLE:
            raise DiscoveryInProgressError(f"Session for [{self.coordinator}] is {self.state.value}")

        self.state = SchedulerState.RUNNING
        self._quiescent = asyncio.Event()
        if self.max_concurrency:
            self._limiter = asyncio.Semaphore(self.max_concurrency)

        emit(self.on_event, EventKind.RUN_STARTED, address=self.coordinator)
        self.lookup[self.coordinator_id] = self.coordinator
        self.enqueue(self.coordinator)
        self._step()

        await self._quiescent.wait()

        builder = TopologyBuilder(
            coordinator=self.coordinator,
            records=self.records,
            lookup=self.lookup,
            on_event=self.on_event,
        )
        nodes, links = builder.build()
        self.state = SchedulerState.COMPLETED

        emit(
            self.on_event,
            EventKind.RUN_COMPLETED,
            address=self.coordinator,
            detail=f"{self.dispatch_count} scanned, {len(nodes)} nodes, {len(links)} links",
        )
        return nodes, links

    def _step(self) -> None:
        """Dispatch every queued address that has not been scanned yet."""
        while self.queue:
            address = self.queue.popleft()
            canonical = normalize(address)
            if canonical is None:
                emit(self.on_event, EventKind.MALFORMED_ADDRESS, detail=str(address))
                continue

            if canonical in self.records:
                emit(self.on_event, EventKind.SCAN_SKIPPED, address=canonical)
                continue

            self.records[canonical] = ScanRecord(address=canonical, state=ScanState.PENDING)
            self.in_flight += 1
            self.dispatch_count += 1
            emit(self.on_event, EventKind.SCAN_DISPATCHED, address=canonical)

            task = asyncio.create_task(self._scan(canonical))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        if self.is_quiescent and self._quiescent is not None:
            self._quiescent.set()

    def cancel(self) -> None:
        """Cancel outstanding requests of an abandoned run."""
        for task in list(self._tasks):
            task.cancel()

    async def _request(self, address: str) -> str:
        if self._limiter is None:
            return await self.transport.request(address)
        async with self._limiter:
            return await self.transport.request(address)

    async def _scan(self, address: str) -> None:
        record = self.records[address]
        try:
            payload = await self._request(address)
        except TransportTimeout:
            self._fail(record, EventKind.SCAN_TIMEOUT, "timeout")
        except TransportError as e:
            self._fail(record, EventKind.SCAN_FAILED, getattr(e, "reason", str(e)))
        except Exception as e:
            logger.opt(exception=e).error(f"Unexpected transport error scanning [{address}]")
            self._fail(record, EventKind.SCAN_FAILED, f"{type(e).__name__}: {e}")
        else:
            self.in_flight -= 1
            record.mapping = parse_devscan_payload(payload, self)
            record.state = ScanState.RESOLVED
            emit(
                self.on_event,
                EventKind.SCAN_SUCCEEDED,
                address=address,
                detail=f"{len(record.mapping)} peer(s)",
                payload=payload,
            )

        self._step()

    def _fail(self, record: ScanRecord, kind: EventKind, reason: str) -> None:
        self.in_flight -= 1
        record.state = ScanState.FAILED
        record.mapping = None
        record.reason = reason
        emit(self.on_event, kind, address=record.address, detail=reason)
