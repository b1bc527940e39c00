"""Mesh devscan discovery subpackage.

Crawls the mesh from its coordinator with per-node devscan requests, resolves
multi-hop parents and produces a node/link graph. Generates JSON or Mermaid
flowchart output.
"""

from meshtopo.devscan.address import derive_identifier, node_id_for, normalize
from meshtopo.devscan.engine import TopologyDiscovery
from meshtopo.devscan.mermaid import MermaidGenerator
from meshtopo.devscan.models import (
    DiscoveryEvent,
    EventKind,
    Link,
    Node,
    NodeType,
    ScanRecord,
    ScanState,
    SchedulerState,
    TopologyGraph,
)
from meshtopo.devscan.parser import iter_devscan_entries, parse_devscan_payload
from meshtopo.devscan.scheduler import ScanSession
from meshtopo.devscan.topology import TopologyBuilder
from meshtopo.devscan.transport import BaseTransport, CoapTransport

__all__ = [
    "normalize",
    "derive_identifier",
    "node_id_for",
    "iter_devscan_entries",
    "parse_devscan_payload",
    "ScanSession",
    "TopologyBuilder",
    "TopologyDiscovery",
    "MermaidGenerator",
    "BaseTransport",
    "CoapTransport",
    "DiscoveryEvent",
    "EventKind",
    "Link",
    "Node",
    "NodeType",
    "ScanRecord",
    "ScanState",
    "SchedulerState",
    "TopologyGraph",
]
