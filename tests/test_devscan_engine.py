"""Tests for meshtopo/devscan/engine.py"""

import asyncio
from unittest.mock import patch

import pytest

from meshtopo.devscan.address import node_id_for
from meshtopo.devscan.engine import TopologyDiscovery
from meshtopo.devscan.models import Link, TopologyGraph
from meshtopo.exceptions import DiscoveryInProgressError, DiscoveryTimeoutError, MalformedAddressError


class TestDiscover:
    """Tests for TopologyDiscovery.discover method."""

    def test_single_neighbour_scenario(self, fake_transport):
        """Test coordinator payload '[2222::2]via[2222::2]' yields one link."""
        discovery = TopologyDiscovery(fake_transport({"2222::3": "[2222::2]via[2222::2]", "2222::2": ""}))

        graph = discovery.discover_sync("2222::3")

        assert isinstance(graph, TopologyGraph)
        assert graph.links == [Link(source=node_id_for("2222::2"), target=node_id_for("2222::3"))]
        assert [n.id for n in graph.nodes] == [node_id_for("2222::3"), node_id_for("2222::2")]
        assert graph.version > 0

    def test_last_result_replaced(self, fake_transport):
        """Test last_result holds the latest snapshot."""
        discovery = TopologyDiscovery(fake_transport({"2222::3": ""}))

        assert discovery.last_result.version == 0
        assert discovery.last_result.nodes == []

        graph = discovery.discover_sync("2222::3")

        assert discovery.last_result is graph

    def test_version_strictly_increasing(self, fake_transport):
        """Test consecutive runs get increasing versions even within one millisecond."""
        discovery = TopologyDiscovery(fake_transport({"2222::3": ""}))

        with patch("meshtopo.devscan.engine.time.time", return_value=1000.0):
            first = discovery.discover_sync("2222::3")
            second = discovery.discover_sync("2222::3")

        assert first.version == 1_000_000
        assert second.version == 1_000_001

    def test_fresh_session_per_run(self, fake_transport):
        """Test each run scans again from scratch."""
        transport = fake_transport({"2222::3": "[2222::2]via[2222::2]", "2222::2": ""})
        discovery = TopologyDiscovery(transport)

        discovery.discover_sync("2222::3")
        discovery.discover_sync("2222::3")

        assert len(transport.requested) == 4

    def test_transport_opened_and_closed(self, fake_transport):
        """Test the transport context is entered once per run."""
        transport = fake_transport({"2222::3": ""})
        discovery = TopologyDiscovery(transport)

        discovery.discover_sync("2222::3")

        assert transport.opened == 1
        assert transport.closed == 1

    def test_concurrent_run_rejected(self, fake_transport):
        """Test a second discover while one is active raises."""
        transport = fake_transport({"2222::3": ""}, delays={"2222::3": 0.05})
        discovery = TopologyDiscovery(transport)

        async def _both():
            first = asyncio.create_task(discovery.discover("2222::3"))
            await asyncio.sleep(0)
            assert discovery.scanning is True
            with pytest.raises(DiscoveryInProgressError):
                await discovery.discover("2222::3")
            return await first

        graph = asyncio.run(_both())

        assert len(graph.nodes) == 1
        assert discovery.scanning is False

    def test_run_timeout(self, fake_transport):
        """Test a stalled run raises DiscoveryTimeoutError and keeps the old snapshot."""
        transport = fake_transport({"2222::3": "[2222::2]via[2222::2]"}, hang=["2222::2"])
        discovery = TopologyDiscovery(transport, run_timeout=0.05)
        previous = discovery.last_result

        with pytest.raises(DiscoveryTimeoutError):
            discovery.discover_sync("2222::3")

        assert discovery.last_result is previous
        assert discovery.scanning is False
        assert transport.closed == 1

    def test_malformed_coordinator(self, fake_transport):
        """Test an invalid coordinator address is rejected before any request."""
        transport = fake_transport({})
        discovery = TopologyDiscovery(transport)

        with pytest.raises(MalformedAddressError):
            discovery.discover_sync("2222:::3:")

        assert transport.requested == []
        assert discovery.scanning is False

    def test_events_forwarded(self, fake_transport, events):
        """Test on_event receives the session's events."""
        discovery = TopologyDiscovery(fake_transport({"2222::3": ""}), on_event=events.append)

        discovery.discover_sync("2222::3")

        assert events
        assert events[-1].kind.value == "run_completed"

    def test_json_shape(self, fake_transport):
        """Test the graph serializes to version/nodes/links with plain values."""
        discovery = TopologyDiscovery(fake_transport({"2222::3": "[2222::2]via[2222::2]", "2222::2": ""}))

        data = discovery.discover_sync("2222::3").model_dump(mode="json")

        assert set(data) == {"version", "nodes", "links"}
        assert data["nodes"][0] == {
            "id": "22220000000000000000000000000003",
            "address": "2222:0000:0000:0000:0000:0000:0000:0003",
            "identifier": "02:00:00:00:00:03",
            "type": "coordinator",
        }
        assert data["nodes"][1]["type"] == "controller"
        assert data["links"] == [
            {"source": "22220000000000000000000000000002", "target": "22220000000000000000000000000003"}
        ]
