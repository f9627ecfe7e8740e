from __future__ import annotations

import queue
import threading
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

from .types import DeliveryMethod

if TYPE_CHECKING:
    from .configuration import Configuration

Payload = dict[str, Any]
# The network transport: sender(endpoint, payload, configuration). Owns proxies, TLS and timeouts.
Sender = Callable[[str, Payload, "Configuration"], None]


class Delivery(Protocol):
    def deliver(self, payload: Payload) -> None:
        ...


def _send(configuration: "Configuration", sender: Sender, payload: Payload) -> None:
    try:
        sender(configuration.endpoint, payload, configuration)
    except Exception as exc:
        configuration.warn(f"Notification to {configuration.endpoint} failed: {exc} ({type(exc).__name__})")


class SynchronousDelivery:
    """Send on the calling thread."""

    def __init__(self, configuration: "Configuration", sender: Sender) -> None:
        self.configuration = configuration
        self.sender = sender

    def deliver(self, payload: Payload) -> None:
        _send(self.configuration, self.sender, payload)


class ThreadQueueDelivery:
    """
    Hand payloads to a single background worker thread.

    The worker starts on first delivery and is a daemon, so it never keeps the
    process alive. Call `flush()` before shutdown to wait for pending sends.

    Usage example
    -------------
        delivery = ThreadQueueDelivery(config, sender=http_post)
        delivery.deliver(payload)
        delivery.flush()
    """

    def __init__(self, configuration: "Configuration", sender: Sender) -> None:
        self.configuration = configuration
        self.sender = sender
        self._queue: "queue.Queue[Payload]" = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

    def _ensure_worker(self) -> None:
        with self._start_lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(target=self._drain, name="faultline-delivery", daemon=True)
            self._worker.start()

    def _drain(self) -> None:
        while True:
            payload = self._queue.get()
            try:
                _send(self.configuration, self.sender, payload)
            finally:
                self._queue.task_done()

    def deliver(self, payload: Payload) -> None:
        self._ensure_worker()
        self._queue.put(payload)

    def flush(self) -> None:
        """Block until every queued payload has been sent (or failed)."""
        self._queue.join()


def make_delivery(configuration: "Configuration", sender: Sender) -> Delivery:
    """Pick the delivery implementation named by ``configuration.delivery_method``."""
    if configuration.delivery_method == DeliveryMethod.SYNCHRONOUS:
        return SynchronousDelivery(configuration, sender)
    return ThreadQueueDelivery(configuration, sender)
