"""Mesh address canonicalization and hardware identifier derivation.

Mesh nodes use 128-bit addresses whose lower 64 bits (the interface
identifier) embed the radio's 48-bit hardware address in modified EUI-64
form: ``aa:bb:cc:dd:ee:ff`` becomes IID ``(aa^02)bb:ccff:fedd:eeff``.
"""

from __future__ import annotations

import ipaddress
import re

from meshtopo.exceptions import MalformedAddressError

_GROUP_COUNT = 8
_GROUP_RE = re.compile(r"[0-9a-fA-F]{1,4}")

_IID_MASK = (1 << 64) - 1
# Universal/local bit of the first IID octet
_UNIVERSAL_LOCAL_BIT = 0x02 << 56
# IID octets carrying the hardware address (3 and 4 hold the ff:fe filler)
_HARDWARE_OCTETS = (0, 1, 2, 5, 6, 7)


def normalize(text: object) -> str | None:
    """Expand an address to 8 zero-padded lowercase groups.

    Returns None when the text cannot be split into exactly 8 hex groups.
    """
    if not isinstance(text, str):
        return None

    text = text.strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]

    if text.count("::") > 1:
        return None

    if "::" in text:
        head, tail = text.split("::")
        head_groups = head.split(":") if head else []
        tail_groups = tail.split(":") if tail else []
        missing = _GROUP_COUNT - len(head_groups) - len(tail_groups)
        if missing < 1:
            return None
        groups = head_groups + ["0"] * missing + tail_groups
    else:
        groups = text.split(":")

    if len(groups) != _GROUP_COUNT:
        return None
    if not all(_GROUP_RE.fullmatch(g) for g in groups):
        return None

    return ":".join(g.zfill(4) for g in groups).lower()


def derive_identifier(address: str) -> str:
    """Extract the hardware identifier embedded in an address's IID.

    Raises:
        MalformedAddressError: If the address does not normalize.
    """
    canonical = normalize(address)
    if canonical is None:
        raise MalformedAddressError(address)

    iid = int(ipaddress.IPv6Address(canonical)) & _IID_MASK
    iid ^= _UNIVERSAL_LOCAL_BIT

    octets = [(iid >> (8 * (7 - i))) & 0xFF for i in _HARDWARE_OCTETS]
    return ":".join(f"{o:02x}" for o in octets)


def node_id_for(address: str) -> str:
    """Graph node id for an address: the canonical form without colons."""
    canonical = normalize(address)
    if canonical is None:
        raise MalformedAddressError(address)
    return canonical.replace(":", "")
