"""Turns a completed devscan record table into nodes and links."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from meshtopo.devscan.address import derive_identifier, node_id_for
from meshtopo.devscan.events import EventSink, emit
from meshtopo.devscan.models import EventKind, Link, Node, NodeType, ScanRecord
from meshtopo.exceptions import HopCycleError, UnresolvedHopError


class TopologyBuilder:
    """Resolve each coordinator peer to its nearest known parent.

    The coordinator only reports the first hop toward a destination. The
    parent of the destination is found by following the hop chain through
    the hops' own devscan tables until a hop has no further indirection
    recorded for that destination.
    """

    def __init__(
        self,
        coordinator: str,
        records: dict[str, ScanRecord],
        lookup: dict[str, str],
        on_event: EventSink | None = None,
    ):
        """
        Args:
            coordinator: Canonical coordinator address.
            records: Address -> ScanRecord table of the completed run.
            lookup: Identifier -> address table filled while parsing.
            on_event: Diagnostic event sink.
        """
        self.coordinator = coordinator
        self.coordinator_id = derive_identifier(coordinator)
        self.records = records
        self.lookup = lookup
        self.on_event = on_event
        self.nodes: list[Node] = []
        self.links: list[Link] = []
        self._node_ids: dict[str, str] = {}  # identifier -> node id

    def _node_id(self, address: str, identifier: str, node_type: NodeType = NodeType.CONTROLLER) -> str:
        """Return the node id for an identifier, creating the Node on first sight."""
        if identifier in self._node_ids:
            return self._node_ids[identifier]

        node_id = node_id_for(address)
        self._node_ids[identifier] = node_id
        self.nodes.append(Node(id=node_id, address=address, identifier=identifier, type=node_type))
        return node_id

    def _mapping_for(self, address: str) -> dict[str, Optional[str]]:
        record = self.records.get(address)
        if record is None or record.mapping is None:
            return {}
        return record.mapping

    def resolve_parent(self, dst_id: str, hop_id: Optional[str]) -> str:
        """Return the identifier of dst_id's nearest parent.

        A hop equal to the coordinator ends the chain at the coordinator.

        Raises:
            UnresolvedHopError: A hop on the chain has no known address.
            HopCycleError: The chain revisits a hop.
        """
        if hop_id is None:
            return self.coordinator_id

        visited: set[str] = {dst_id}
        while True:
            if hop_id == self.coordinator_id:
                return self.coordinator_id
            if hop_id in visited:
                raise HopCycleError(dst_id, hop_id)
            visited.add(hop_id)

            hop_address = self.lookup.get(hop_id)
            if hop_address is None:
                raise UnresolvedHopError(dst_id, hop_id)

            next_hop_id = self._mapping_for(hop_address).get(dst_id)
            if next_hop_id is None:
                return hop_id
            hop_id = next_hop_id

    def build(self) -> tuple[list[Node], list[Link]]:
        """Build the node and link lists. The coordinator is always the first node."""
        coordinator_node_id = self._node_id(self.coordinator, self.coordinator_id, NodeType.COORDINATOR)

        for dst_id, hop_id in self._mapping_for(self.coordinator).items():
            if dst_id == self.coordinator_id:
                logger.debug(f"Ignoring coordinator {dst_id} listed in its own devscan")
                continue

            # Only reachable with hand-built tables; the parser registers every peer it maps
            dst_address = self.lookup.get(dst_id)
            if dst_address is None:
                emit(
                    self.on_event,
                    EventKind.UNRESOLVED_HOP,
                    identifier=dst_id,
                    detail=f"No address known for destination {dst_id}",
                )
                continue

            source = self._node_id(dst_address, dst_id)
            try:
                parent_id = self.resolve_parent(dst_id, hop_id)
            except UnresolvedHopError as e:
                emit(self.on_event, EventKind.UNRESOLVED_HOP, identifier=e.destination, detail=str(e))
                continue
            except HopCycleError as e:
                emit(self.on_event, EventKind.HOP_CYCLE, identifier=e.destination, detail=str(e))
                continue

            if parent_id == self.coordinator_id:
                target = coordinator_node_id
            else:
                target = self._node_id(self.lookup[parent_id], parent_id)

            self.links.append(Link(source=source, target=target))

        return self.nodes, self.links
