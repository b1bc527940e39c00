"""Pydantic models and enums for mesh topology discovery."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class NodeType(str, Enum):
    COORDINATOR = "coordinator"
    CONTROLLER = "controller"


class ScanState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


class EventKind(str, Enum):
    RUN_STARTED = "run_started"
    SCAN_DISPATCHED = "scan_dispatched"
    SCAN_SKIPPED = "scan_skipped"
    SCAN_SUCCEEDED = "scan_succeeded"
    SCAN_FAILED = "scan_failed"
    SCAN_TIMEOUT = "scan_timeout"
    MALFORMED_ADDRESS = "malformed_address"
    UNRESOLVED_HOP = "unresolved_hop"
    HOP_CYCLE = "hop_cycle"
    REQUEST_SENT = "request_sent"
    RESPONSE_RECEIVED = "response_received"
    RUN_COMPLETED = "run_completed"


class ScanRecord(BaseModel):
    address: str
    state: ScanState = ScanState.PENDING
    mapping: Optional[dict[str, Optional[str]]] = None  # peer identifier -> hop identifier
    reason: str = ""


class Node(BaseModel):
    id: str
    address: str
    identifier: str
    type: NodeType = NodeType.CONTROLLER


class Link(BaseModel):
    source: str
    target: str


class TopologyGraph(BaseModel):
    version: int = 0  # ms timestamp, strictly increasing per service
    nodes: list[Node] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)


class DiscoveryEvent(BaseModel):
    kind: EventKind
    address: str = ""
    identifier: str = ""
    detail: str = ""
    payload: str = ""
    size: int = 0
