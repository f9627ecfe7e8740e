"""Built-in middleware steps installed by Configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .middleware import Next, Step

if TYPE_CHECKING:
    from .configuration import Configuration
    from .event import Event


def ignore_classes_step(configuration: "Configuration") -> Step:
    """Halt the pipeline for events whose class is in ``ignore_classes``."""

    def ignore_classes(event: "Event", next_: Next) -> Any:
        if configuration.is_ignored(event.error_class):
            configuration.warn(f"Not notifying {event.error_class}, it is in ignore_classes")
            return None
        return next_()

    return ignore_classes


def request_data_step(configuration: "Configuration") -> Step:
    """Attach the current execution context's request data to the event."""

    def attach_request_data(event: "Event", next_: Next) -> Any:
        data = configuration.request_data()
        if data:
            event.request_data.update(data)
            event.add_tab("request", data)
        return next_()

    return attach_request_data


def callbacks_step(configuration: "Configuration") -> Step:
    """Run ``before_notify_callbacks``; a callback returning False vetoes the event."""

    def before_notify_callbacks(event: "Event", next_: Next) -> Any:
        for callback in list(configuration.before_notify_callbacks):
            if callback(event) is False:
                configuration.debug(f"{getattr(callback, '__name__', callback)!s} cancelled notification")
                return None
        return next_()

    return before_notify_callbacks
