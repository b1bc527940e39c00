"""Tests for meshtopo/devscan/cli.py"""

import json
from unittest.mock import MagicMock, patch

import pytest

from meshtopo.devscan.cli import main, parse_args
from meshtopo.devscan.models import Link, Node, NodeType, TopologyGraph
from meshtopo.exceptions import DiscoveryTimeoutError

GRAPH = TopologyGraph(
    version=1700000000000,
    nodes=[
        Node(
            id="22220000000000000000000000000003",
            address="2222:0000:0000:0000:0000:0000:0000:0003",
            identifier="02:00:00:00:00:03",
            type=NodeType.COORDINATOR,
        ),
        Node(
            id="22220000000000000000000000000002",
            address="2222:0000:0000:0000:0000:0000:0000:0002",
            identifier="02:00:00:00:00:02",
        ),
    ],
    links=[Link(source="22220000000000000000000000000002", target="22220000000000000000000000000003")],
)


@pytest.fixture()
def patched_discovery():
    """Patch transport and discovery so main() never touches the network."""
    with (
        patch("meshtopo.devscan.cli.HAS_AIOCOAP", True),
        patch("meshtopo.devscan.cli.CoapTransport") as transport_cls,
        patch("meshtopo.devscan.cli.TopologyDiscovery") as discovery_cls,
    ):
        discovery = MagicMock()
        discovery.discover_sync.return_value = GRAPH
        discovery_cls.return_value = discovery
        yield transport_cls, discovery_cls, discovery


class TestParseArgs:
    """Tests for parse_args function."""

    def test_default_values(self):
        """Test default values are set."""
        args = parse_args([])

        assert args.coordinator == "2222::3"
        assert args.format == "json"
        assert args.ack_timeout == 1.0
        assert args.max_retransmit == 3
        assert args.port == 5683
        assert args.max_concurrency is None
        assert args.timeout is None

    def test_coordinator_positional(self):
        """Test coordinator address argument."""
        args = parse_args(["fd00::1"])

        assert args.coordinator == "fd00::1"

    def test_all_flags(self):
        """Test all flags are parsed correctly."""
        args = parse_args(
            [
                "2222::3",
                "--format",
                "mermaid",
                "--ack-timeout",
                "2.5",
                "--max-retransmit",
                "5",
                "--port",
                "5684",
                "--max-concurrency",
                "4",
                "--timeout",
                "60",
                "--direction",
                "LR",
                "--elk",
                "-v",
                "-o",
                "out.md",
            ]
        )

        assert args.format == "mermaid"
        assert args.ack_timeout == 2.5
        assert args.max_retransmit == 5
        assert args.port == 5684
        assert args.max_concurrency == 4
        assert args.timeout == 60.0
        assert args.direction == "LR"
        assert args.elk is True
        assert args.verbose is True
        assert args.output == "out.md"

    def test_invalid_format_rejected(self):
        """Test unknown output format exits."""
        with pytest.raises(SystemExit):
            parse_args(["--format", "dot"])


class TestMain:
    """Tests for main function."""

    def test_json_to_file(self, patched_discovery, tmp_path):
        """Test JSON output is written to the requested file."""
        transport_cls, discovery_cls, discovery = patched_discovery
        out = tmp_path / "topology.json"

        main(["2222::3", "-v", "-o", str(out)])

        data = json.loads(out.read_text())
        assert data["version"] == 1700000000000
        assert data["nodes"][0]["type"] == "coordinator"
        assert data["links"][0]["target"] == "22220000000000000000000000000003"
        discovery.discover_sync.assert_called_once_with("2222::3")

    def test_transport_configured_from_flags(self, patched_discovery, tmp_path):
        """Test retransmission, port and concurrency flags reach the engine."""
        transport_cls, discovery_cls, discovery = patched_discovery

        main(
            [
                "2222::3",
                "-v",
                "--ack-timeout",
                "2",
                "--max-retransmit",
                "1",
                "--port",
                "5684",
                "--max-concurrency",
                "2",
                "--timeout",
                "30",
                "-o",
                str(tmp_path / "t.json"),
            ]
        )

        transport_cls.assert_called_once_with(ack_timeout=2.0, max_retransmit=1, port=5684)
        discovery_cls.assert_called_once_with(transport_cls.return_value, max_concurrency=2, run_timeout=30.0)

    def test_mermaid_to_stdout(self, patched_discovery, capsys):
        """Test Mermaid output is printed when no file is given."""
        main(["2222::3", "-v", "--format", "mermaid"])

        out = capsys.readouterr().out
        assert out.startswith("```mermaid")
        assert "n2 --> n1" in out

    def test_invalid_coordinator_exits(self, patched_discovery):
        """Test an unparsable coordinator address exits with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["not::an::address", "-v"])

        assert exc_info.value.code == 1
        patched_discovery[2].discover_sync.assert_not_called()

    def test_invalid_concurrency_exits(self, patched_discovery):
        """Test a concurrency limit below 1 is rejected."""
        with pytest.raises(SystemExit) as exc_info:
            main(["2222::3", "-v", "--max-concurrency", "0"])

        assert exc_info.value.code == 1

    def test_missing_aiocoap_exits(self, patched_discovery):
        """Test a clear exit when aiocoap is not installed."""
        with patch("meshtopo.devscan.cli.HAS_AIOCOAP", False):
            with pytest.raises(SystemExit) as exc_info:
                main(["2222::3", "-v"])

        assert exc_info.value.code == 1

    def test_run_timeout_exits(self, patched_discovery):
        """Test an abandoned run exits with status 2."""
        patched_discovery[2].discover_sync.side_effect = DiscoveryTimeoutError("too slow")

        with pytest.raises(SystemExit) as exc_info:
            main(["2222::3", "-v", "--timeout", "1"])

        assert exc_info.value.code == 2
