"""Forwarder module — id allocation and end-to-end forwarding."""

from src.forwarder.counter import ForwardingIdCounter
from src.forwarder.exceptions import ForwardingCancelled, ForwardingError, ForwardingFailed
from src.forwarder.orchestrator import Forwarder, bounded_deadline

__all__ = [
    "Forwarder",
    "ForwardingCancelled",
    "ForwardingError",
    "ForwardingFailed",
    "ForwardingIdCounter",
    "bounded_deadline",
]
