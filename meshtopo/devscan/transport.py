"""Devscan request transports."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Self

from loguru import logger

from meshtopo.devscan.events import EventSink, emit
from meshtopo.devscan.models import EventKind
from meshtopo.exceptions import TransportFailure, TransportTimeout

# Optional aiocoap import
try:
    from aiocoap import GET, Context, Message
    from aiocoap.error import Error as CoapError
    from aiocoap.error import RequestTimedOut
    from aiocoap.numbers.constants import TransportTuning

    HAS_AIOCOAP = True
except ImportError:
    HAS_AIOCOAP = False

COAP_DEFAULT_PORT = 5683
_ACK_RANDOM_FACTOR = 1.5


class BaseTransport(ABC):
    """Abstract request primitive used by the scan scheduler.

    ``request`` returns the payload text of a successful devscan and raises
    TransportFailure or TransportTimeout otherwise.
    """

    def __init__(
        self,
        ack_timeout: float = 1.0,
        max_retransmit: int = 3,
        on_event: EventSink | None = None,
    ):
        self.ack_timeout = ack_timeout
        self.max_retransmit = max_retransmit
        self.on_event = on_event

    @abstractmethod
    async def request(self, address: str) -> str:
        """Send a devscan request to a canonical address and return its payload."""

    async def open(self) -> None:
        """Acquire transport resources."""

    async def close(self) -> None:
        """Release transport resources."""

    @property
    def max_transmit_wait(self) -> float:
        """Longest time a confirmable exchange may take before giving up."""
        return self.ack_timeout * (2 ** (self.max_retransmit + 1) - 1) * _ACK_RANDOM_FACTOR

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        await self.close()


class CoapTransport(BaseTransport):
    """Devscan over CoAP: ``GET coap://[address]:port/devscan``."""

    def __init__(
        self,
        ack_timeout: float = 1.0,
        max_retransmit: int = 3,
        port: int = COAP_DEFAULT_PORT,
        resource: str = "devscan",
        on_event: EventSink | None = None,
    ):
        super().__init__(ack_timeout=ack_timeout, max_retransmit=max_retransmit, on_event=on_event)
        if not HAS_AIOCOAP:
            raise RuntimeError("aiocoap is required for CoapTransport (pip install aiocoap)")
        self.port = port
        self.resource = resource.strip("/")
        self._context: Context | None = None
        self._open_lock: asyncio.Lock | None = None
        self._tuning = self._build_tuning()

    def _build_tuning(self) -> TransportTuning:
        tuning = TransportTuning()
        tuning.ACK_TIMEOUT = self.ack_timeout
        tuning.MAX_RETRANSMIT = self.max_retransmit
        return tuning

    def uri_for(self, address: str) -> str:
        port = "" if self.port == COAP_DEFAULT_PORT else f":{self.port}"
        return f"coap://[{address}]{port}/{self.resource}"

    async def open(self) -> None:
        # Concurrent first requests must share one client context
        if self._open_lock is None:
            self._open_lock = asyncio.Lock()
        async with self._open_lock:
            if self._context is None:
                self._context = await Context.create_client_context()

    async def close(self) -> None:
        if self._context is not None:
            await self._context.shutdown()
            self._context = None
        self._open_lock = None

    async def request(self, address: str) -> str:
        await self.open()
        assert self._context is not None

        uri = self.uri_for(address)
        message = Message(code=GET, uri=uri, transport_tuning=self._tuning)
        emit(self.on_event, EventKind.REQUEST_SENT, address=address, detail=uri)

        try:
            response = await asyncio.wait_for(
                self._context.request(message).response,
                timeout=self.max_transmit_wait + self.ack_timeout,
            )
        except (RequestTimedOut, asyncio.TimeoutError):
            raise TransportTimeout(address) from None
        except CoapError as e:
            raise TransportFailure(address, str(e) or type(e).__name__) from e
        except OSError as e:
            raise TransportFailure(address, str(e)) from e

        emit(
            self.on_event,
            EventKind.RESPONSE_RECEIVED,
            address=address,
            detail=str(response.code),
            size=len(response.payload),
        )

        if not response.code.is_successful():
            logger.debug(f"Devscan response from [{address}]: {response.code}")
            raise TransportFailure(address, f"response code {response.code}")

        return response.payload.decode("utf-8", errors="replace")
