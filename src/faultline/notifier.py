from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from .configuration import Configuration
from .delivery import Delivery, Sender, make_delivery
from .event import Event
from .middleware import run_chain
from .redaction import redact
from .types import NotifyOutcome


class Notifier:
    """
    Gate, build, filter and deliver error events.

    Design notes
    ------------
    - Configuration decides *whether* to notify; middleware decides *what* is sent.
    - A fault in a middleware step is logged here and reported as FAILED; it never
      reaches the caller.

    Usage example
    -------------
        notifier = Notifier(config, sender=http_post)
        try:
            handle()
        except Exception as exc:
            notifier.notify(exc, metadata={"job": {"id": 7}})
    """

    def __init__(
        self,
        configuration: Configuration,
        *,
        sender: Optional[Sender] = None,
        delivery: Optional[Delivery] = None,
    ) -> None:
        if delivery is None:
            if sender is None:
                raise ValueError("Notifier needs either a sender or a delivery.")
            delivery = make_delivery(configuration, sender)
        self.configuration = configuration
        self.delivery = delivery

    def notify(
        self,
        exc: BaseException,
        *,
        severity: str = "warning",
        metadata: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> NotifyOutcome:
        """Report `exc` unless gating, an ignore rule or a middleware step stops it."""
        cfg = self.configuration
        if not cfg.should_notify_release_stage() or not cfg.valid_api_key():
            return NotifyOutcome.SUPPRESSED

        try:
            event = Event.from_exception(exc, configuration=cfg, severity=severity, metadata=metadata)
            if cfg.send_environment:
                event.add_tab("environment", dict(os.environ))
            result = run_chain(cfg.internal_middleware, cfg.middleware, event, self._deliver)
        except Exception as error:
            cfg.warn(f"Failed to notify {type(exc).__name__}: {error} ({type(error).__name__})")
            return NotifyOutcome.FAILED

        if result.halted:
            cfg.debug(f"Notification of {type(exc).__name__} halted by {result.halted_by}")
            return NotifyOutcome.HALTED
        return NotifyOutcome.DELIVERED

    def auto_notify(
        self,
        exc: BaseException,
        *,
        metadata: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> NotifyOutcome:
        """Entry point for framework hooks; respects ``auto_notify``."""
        if not self.configuration.auto_notify:
            return NotifyOutcome.SUPPRESSED
        return self.notify(exc, severity="error", metadata=metadata)

    def _deliver(self, event: Event) -> None:
        filters = self.configuration.params_filters_snapshot()
        event.metadata = redact(event.metadata, filters)
        event.request_data = redact(event.request_data, filters)
        payload = event.to_payload(self.configuration.api_key)
        self.configuration.debug(f"Delivering {event.error_class} to {self.configuration.endpoint}")
        self.delivery.deliver(payload)
