from __future__ import annotations

import logging
from typing import Callable, Dict, List, Tuple

from app.models.stream import Envelope, MessageKind, Record

logger = logging.getLogger(__name__)

Subscriber = Callable[[Envelope], None]

_LOG_LEVELS = {
    MessageKind.PROGRESS: logging.INFO,
    MessageKind.RAW: logging.INFO,
    MessageKind.WARNING: logging.WARNING,
    MessageKind.ERROR: logging.ERROR,
}


class Dispatcher:
    """Route envelopes by kind and keep the latest Success result set.

    The dispatcher is the only writer of the retained results. Success replaces
    them outright (last-write-wins); every other kind is an observability signal
    that leaves results and the connection untouched.
    """

    def __init__(self) -> None:
        self._results: Tuple[Record, ...] = ()
        self._subscribers: Dict[MessageKind, List[Subscriber]] = {}
        self.dispatched = 0

    @property
    def results(self) -> Tuple[Record, ...]:
        return self._results

    def subscribe(self, kind: MessageKind, callback: Subscriber) -> Callable[[], None]:
        """Register callback for one kind; returns a function that unsubscribes it."""
        callbacks = self._subscribers.setdefault(kind, [])
        callbacks.append(callback)

        def _unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return _unsubscribe

    def clear(self) -> None:
        self._results = ()

    def dispatch(self, envelope: Envelope) -> None:
        self.dispatched += 1
        if envelope.kind is MessageKind.SUCCESS:
            records = envelope.results or []
            self._results = tuple(dict(r) for r in records)
            logger.info("Received %d result record(s)", len(self._results))
        else:
            logger.log(_LOG_LEVELS[envelope.kind], "Received %s: %s", envelope.kind.value, envelope.payload)
        self._notify(envelope)

    def _notify(self, envelope: Envelope) -> None:
        for callback in list(self._subscribers.get(envelope.kind, ())):
            try:
                callback(envelope)
            except Exception:
                logger.exception("Subscriber for %s failed", envelope.kind.value)

