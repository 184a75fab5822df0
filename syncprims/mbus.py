"""Message bus delivering messages to callbacks registered under numeric ids.

A message is delivered by calling the recipient's callback with its context
and the message. Unregistering a client waits until no delivery to it is
still running, so after :meth:`Bus.unregister` returns its callback is never
called again.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

DEFAULT_CLIENTS = 128
MAX_CLIENTS = (1 << 32) - 1

BusCallback = Callable[[Any, Any], None]


@dataclass(eq=False)
class _Client:
    callback: BusCallback
    ctx: Any
    refcnt: int = 0


class Bus:
    """A fixed number of client slots addressed by id."""

    def __init__(self, n_clients: int = 0) -> None:
        if not 0 <= n_clients <= MAX_CLIENTS:
            raise ValueError(f"n_clients must be between 0 and {MAX_CLIENTS}")
        self._n_clients = n_clients or DEFAULT_CLIENTS
        self._clients: dict[int, _Client] = {}
        self._changed = threading.Condition()

    @property
    def n_clients(self) -> int:
        """Number of client slots."""
        return self._n_clients

    def register(self, client_id: int, callback: BusCallback, ctx: Any = None) -> bool:
        """Register ``callback`` under a free id; return False if it is taken or out of range."""
        if not 0 <= client_id < self._n_clients:
            return False
        with self._changed:
            if client_id in self._clients:
                return False
            self._clients[client_id] = _Client(callback, ctx)
            return True

    def _deliver(self, client_id: int, msg: Any) -> bool:
        with self._changed:
            client = self._clients.get(client_id)
            if client is None:
                return False
            client.refcnt += 1
        try:
            client.callback(client.ctx, msg)
        finally:
            with self._changed:
                client.refcnt -= 1
                self._changed.notify_all()
        return True

    def send(self, client_id: int, msg: Any, broadcast: bool = False) -> bool:
        """Deliver ``msg`` to one client, or to every registered client if ``broadcast``.

        Returns False if the single recipient is not registered or out of range.
        """
        if broadcast:
            with self._changed:
                ids = sorted(self._clients)
            for each in ids:
                self._deliver(each, msg)
            return True
        if not 0 <= client_id < self._n_clients:
            return False
        return self._deliver(client_id, msg)

    def unregister(self, client_id: int) -> bool:
        """Remove a client once its running deliveries finish; False if it was not registered."""
        if not 0 <= client_id < self._n_clients:
            return False
        with self._changed:
            client = self._clients.get(client_id)
            if client is None:
                return False
            self._changed.wait_for(
                lambda: self._clients.get(client_id) is not client or client.refcnt == 0
            )
            if self._clients.get(client_id) is client:
                del self._clients[client_id]
            return True