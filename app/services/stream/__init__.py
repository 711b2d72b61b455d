"""Client for the crawl event stream.

Structure:
- sse.py: text/event-stream line decoding
- codec.py: frame -> Envelope validation (JSON5 dialect)
- connection.py: connection state machine with fixed-delay reconnect
- dispatcher.py: per-kind routing, latest Success result set
- session.py: owned session object tying the pieces together
- export.py: JSON/CSV rendering of the retained results
"""

from .session import StreamSession

__all__ = [
    "StreamSession",
]
