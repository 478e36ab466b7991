"""Stale-preview detection for repeatedly issued billing previews.

Clients recompute the preview on every input change and tag each request with
an increasing request_id. Only the newest request per client is current;
results for older requests must be discarded by the caller.
"""

import threading
from collections import OrderedDict

DEFAULT_MAX_CLIENTS = 1024


class PreviewSequencer:
    """Track the newest preview request id seen per client key.

    At most max_clients keys are kept; the least recently active one is
    dropped first. A dropped client starts over, so its next request is current.
    """

    def __init__(self, max_clients: int = DEFAULT_MAX_CLIENTS) -> None:
        self._latest: OrderedDict[str, int] = OrderedDict()
        self._max_clients = max_clients
        self._lock = threading.Lock()

    def begin(self, client_key: str, request_id: int) -> None:
        """Record that a preview request has started."""
        with self._lock:
            if request_id > self._latest.get(client_key, 0):
                self._latest[client_key] = request_id
            if client_key in self._latest:
                self._latest.move_to_end(client_key)
            while len(self._latest) > self._max_clients:
                self._latest.popitem(last=False)

    def is_current(self, client_key: str, request_id: int) -> bool:
        """True if no newer request from this client has been seen."""
        with self._lock:
            return request_id >= self._latest.get(client_key, 0)

    def forget(self, client_key: str) -> None:
        with self._lock:
            self._latest.pop(client_key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._latest)


# Shared by the API process
preview_sequencer = PreviewSequencer()


__all__ = ["PreviewSequencer", "preview_sequencer"]
