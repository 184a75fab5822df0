"""Unbounded multi-producer/single-consumer FIFO queue.

Any thread may push at any time. Only one thread at a time may inspect or
remove the front. A producer swaps itself in as the tail and then links the
previous tail to its node. The consumer waits briefly for that link when it
overtakes a producer. The atomic operations are emulated with a private mutex.
"""

from __future__ import annotations

import threading
import time
from typing import Any


class _Node:
    __slots__ = ("item", "next")

    def __init__(self, item: Any) -> None:
        self.item = item
        self.next: _Node | None = None


class MPSCQueue:
    """FIFO queue for many producers and one consumer."""

    def __init__(self) -> None:
        self._atomic = threading.Lock()
        self._head: _Node | None = None
        self._tail: _Node | None = None

    def push(self, item: Any) -> None:
        """Append ``item`` at the back; safe from any thread."""
        node = _Node(item)
        with self._atomic:
            old_tail, self._tail = self._tail, node
        if old_tail is None:
            self._head = node
        else:
            old_tail.next = node

    def has_front(self) -> bool:
        """True if an item is available at the front."""
        return self._head is not None

    def front(self) -> Any:
        """Return the front item without removing it."""
        head = self._head
        if head is None:
            raise IndexError("front of an empty queue")
        return head.item

    def pop(self) -> Any:
        """Remove the front item and return it."""
        popped = self._head
        if popped is None:
            raise IndexError("pop from an empty queue")
        with self._atomic:
            was_last = self._tail is popped
            if was_last:
                self._tail = None
        if was_last:
            # A producer may have pushed meanwhile and already set the head.
            with self._atomic:
                if self._head is popped:
                    self._head = None
        else:
            # The producer that follows may not have linked its node yet.
            while (successor := popped.next) is None:
                time.sleep(0)
            self._head = successor
        return popped.item

    def clear(self) -> None:
        """Remove every item."""
        while self.has_front():
            self.pop()