"""Exception hierarchy for mesh topology discovery."""


class MeshTopoError(Exception):
    """Base exception for all mesh topology discovery errors."""


class MalformedAddressError(MeshTopoError):
    """Address text could not be expanded into 8 groups."""

    def __init__(self, text: object):
        self.text = text
        super().__init__(f"Malformed mesh address: {text!r}")


class TransportError(MeshTopoError):
    """Devscan request did not produce a payload."""

    def __init__(self, message: str, address: str = ""):
        self.address = address
        super().__init__(message)


class TransportFailure(TransportError):
    """Devscan request failed (error response or transport error)."""

    def __init__(self, address: str, reason: str):
        self.reason = reason
        super().__init__(f"Failed to scan [{address}]: {reason}", address=address)


class TransportTimeout(TransportError):
    """Devscan request exhausted its retransmissions without a response."""

    def __init__(self, address: str):
        super().__init__(f"Failed to scan [{address}]: timeout", address=address)


class UnresolvedHopError(MeshTopoError):
    """Hop identifier has no known address during parent resolution."""

    def __init__(self, destination: str, hop: str):
        self.destination = destination
        self.hop = hop
        super().__init__(f"No address known for hop {hop} (destination {destination})")


class HopCycleError(MeshTopoError):
    """Hop chain for a destination revisits an identifier."""

    def __init__(self, destination: str, hop: str):
        self.destination = destination
        self.hop = hop
        super().__init__(f"Hop chain for {destination} loops back to {hop}")


class DiscoveryInProgressError(MeshTopoError):
    """A discovery run is already active on this session."""


class DiscoveryTimeoutError(MeshTopoError):
    """A discovery run did not reach quiescence within the run timeout."""
