"""Rule-based dataclass validation, websocket message framing, and pooled websocket clients and servers."""

__version__ = "0.1.0"