"""State sink — Matrix room state and digest messages."""

from review_counter.matrix.client import MatrixClient
from review_counter.matrix.exceptions import PushError, PushStatusError, PushTransportError

__all__ = [
    "MatrixClient",
    "PushError",
    "PushStatusError",
    "PushTransportError",
]
