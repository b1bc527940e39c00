"""CLI entry point for mesh devscan topology discovery — standalone-capable."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from meshtopo.devscan.address import normalize
from meshtopo.devscan.engine import TopologyDiscovery
from meshtopo.devscan.mermaid import MermaidGenerator
from meshtopo.devscan.transport import COAP_DEFAULT_PORT, HAS_AIOCOAP, CoapTransport
from meshtopo.exceptions import DiscoveryTimeoutError


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Build argparse parser for mesh topology discovery."""
    parser = argparse.ArgumentParser(
        description="Mesh network topology discovery via CoAP devscan",
    )
    parser.add_argument(
        "coordinator",
        nargs="?",
        default="2222::3",
        help="Coordinator address (default: 2222::3)",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output file (default: stdout)",
    )
    parser.add_argument(
        "--format",
        choices=["json", "mermaid"],
        default="json",
        help="Output format (default: json)",
    )
    parser.add_argument(
        "--ack-timeout",
        type=float,
        default=1.0,
        help="CoAP acknowledgement timeout in seconds (default: 1.0)",
    )
    parser.add_argument(
        "--max-retransmit",
        type=int,
        default=3,
        help="CoAP maximum retransmissions (default: 3)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=COAP_DEFAULT_PORT,
        help=f"CoAP port (default: {COAP_DEFAULT_PORT})",
    )
    parser.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        help="Limit simultaneous devscan requests (default: unlimited)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Abort the whole discovery after this many seconds (default: no limit)",
    )
    parser.add_argument(
        "--direction",
        choices=["LR", "TD", "BT"],
        default="",
        help="Mermaid flowchart direction (default: auto, TD for 40+ nodes, BT otherwise)",
    )
    parser.add_argument(
        "--elk",
        action="store_true",
        help="Use ELK layout engine (better node placement for large diagrams)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(args)


def main(args: list[str] | None = None) -> None:
    """Main entry point for discovery CLI."""
    parsed = parse_args(args)
    logger.enable("meshtopo")

    if not parsed.verbose:
        logger.remove()
        logger.add(sys.stderr, level="INFO")

    if normalize(parsed.coordinator) is None:
        logger.error(f"Invalid coordinator address: {parsed.coordinator}")
        sys.exit(1)

    if parsed.max_concurrency is not None and parsed.max_concurrency < 1:
        logger.error("--max-concurrency must be at least 1")
        sys.exit(1)

    if not HAS_AIOCOAP:
        logger.error("aiocoap is required for devscan requests (pip install aiocoap)")
        sys.exit(1)

    transport = CoapTransport(
        ack_timeout=parsed.ack_timeout,
        max_retransmit=parsed.max_retransmit,
        port=parsed.port,
    )
    discovery = TopologyDiscovery(
        transport,
        max_concurrency=parsed.max_concurrency,
        run_timeout=parsed.timeout,
    )

    try:
        graph = discovery.discover_sync(parsed.coordinator)
    except DiscoveryTimeoutError as e:
        logger.error(str(e))
        sys.exit(2)

    if parsed.format == "json":
        output = graph.model_dump_json(indent=2)
    else:
        output = MermaidGenerator(graph, direction=parsed.direction, elk=parsed.elk).generate()

    if parsed.output:
        Path(parsed.output).write_text(output + "\n")
        logger.info(f"Output written to {parsed.output}")
    else:
        print(output)
