"""Devscan payload parsing.

A node answers a devscan request with its routing view as repeated
``[peer]via[hop]`` entries, e.g.::

    [2222::2]via[2222::2][2222::5]via[2222::2]

meaning peer 2222::2 is a direct neighbour and 2222::5 is reached through
2222::2.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterator, Optional

from meshtopo.devscan.address import derive_identifier, normalize
from meshtopo.devscan.events import EventSink, emit
from meshtopo.devscan.models import EventKind

if TYPE_CHECKING:
    from meshtopo.devscan.scheduler import ScanSession

_DEVSCAN_ENTRY_RE = re.compile(r"\[([0-9a-fA-F:]+)\]via\[([0-9a-fA-F:]+)\]")


def iter_devscan_entries(payload: str, on_event: EventSink | None = None) -> Iterator[tuple[str, str]]:
    """Yield normalized (peer, hop) address pairs found in a payload.

    Entries with an address that does not normalize are skipped.
    """
    for m in _DEVSCAN_ENTRY_RE.finditer(payload):
        peer = normalize(m.group(1))
        hop = normalize(m.group(2))
        if peer is None or hop is None:
            emit(on_event, EventKind.MALFORMED_ADDRESS, detail=m.group(0))
            continue
        yield peer, hop


def parse_devscan_payload(payload: str, session: ScanSession) -> dict[str, Optional[str]]:
    """Turn a devscan payload into a peer identifier -> hop identifier mapping.

    The hop is None when the peer is its own hop (a direct neighbour of the
    scanned node). Every peer is registered in the session's identifier
    lookup table and queued for its own scan.
    """
    result: dict[str, Optional[str]] = {}
    if not payload:
        return result

    for peer, hop in iter_devscan_entries(payload, session.on_event):
        peer_id = derive_identifier(peer)
        hop_id = derive_identifier(hop)

        # First address seen for a device wins
        session.lookup.setdefault(peer_id, peer)
        result[peer_id] = None if peer_id == hop_id else hop_id

        session.enqueue(peer)

    return result
