"""Mermaid flowchart diagram generation from TopologyGraph data."""

from __future__ import annotations

import ipaddress
import json

from loguru import logger

from meshtopo.devscan.models import Node, NodeType, TopologyGraph


class MermaidGenerator:
    def __init__(
        self,
        graph: TopologyGraph,
        direction: str = "",
        elk: bool = False,
    ):
        self.graph = graph
        self.direction = direction  # "LR", "TD", or "" (auto)
        self.elk = elk
        self._id_counter = 0
        self._mermaid_ids: dict[str, str] = {}  # node id -> mermaid id

    def _next_id(self, prefix: str = "n") -> str:
        self._id_counter += 1
        return f"{prefix}{self._id_counter}"

    def _sanitize(self, text: str) -> str:
        """Sanitize text for Mermaid labels."""
        return text.replace('"', "'").replace("<", "&lt;").replace(">", "&gt;")

    @staticmethod
    def _short_address(address: str) -> str:
        try:
            return ipaddress.IPv6Address(address).compressed
        except ValueError:
            return address

    def _node_label(self, node: Node) -> str:
        parts = [node.identifier, self._short_address(node.address)]
        if node.type == NodeType.COORDINATOR:
            parts.insert(0, "Coordinator")
        return "<br/>".join(self._sanitize(p) for p in parts)

    def _mermaid_id(self, node_id: str) -> str:
        if node_id not in self._mermaid_ids:
            self._mermaid_ids[node_id] = self._next_id()
        return self._mermaid_ids[node_id]

    def _wrap_mermaid(self, body: str) -> str:
        """Wrap raw mermaid body in fenced code block with optional config preamble."""
        fc_cfg: dict[str, object] = {}
        if self.elk:
            fc_cfg["defaultRenderer"] = "elk"
        if len(self.graph.nodes) > 30:
            fc_cfg["nodeSpacing"] = 30
            fc_cfg["rankSpacing"] = 30

        preamble = ""
        if fc_cfg:
            inner = ", ".join(f'"{k}": {json.dumps(v)}' for k, v in fc_cfg.items())
            preamble = f'%%{{init: {{"flowchart": {{{inner}}}}}}}%%\n'

        return "```mermaid\n" + preamble + body + "\n```"

    def generate(self) -> str:
        """Generate Mermaid flowchart string (edges point from a node to its parent)."""
        total = len(self.graph.nodes)
        direction = self.direction or ("TD" if total > 40 else "BT")
        logger.info(
            f"Diagram: {total} nodes, {len(self.graph.links)} links, direction: {direction}"
            + (", renderer: elk" if self.elk else "")
        )

        lines: list[str] = [f"flowchart {direction}"]
        lines.append("    classDef coordinator fill:#f96,stroke:#333,stroke-width:2px")

        for node in self.graph.nodes:
            mid = self._mermaid_id(node.id)
            if node.type == NodeType.COORDINATOR:
                lines.append(f'    {mid}(["{self._node_label(node)}"]):::coordinator')
            else:
                lines.append(f'    {mid}["{self._node_label(node)}"]')

        for link in self.graph.links:
            if link.source not in self._mermaid_ids or link.target not in self._mermaid_ids:
                logger.warning(f"Skipping link with unknown endpoint: {link.source} -> {link.target}")
                continue
            lines.append(f"    {self._mermaid_ids[link.source]} --> {self._mermaid_ids[link.target]}")

        return self._wrap_mermaid("\n".join(lines))
