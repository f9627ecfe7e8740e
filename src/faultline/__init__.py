"""
faultline: configuration and dispatch core of an error-reporting notifier.

Key primitives
--------------
- Configuration: process-wide settings, release-stage gating, API key checks
- RequestContextStore: per-thread / per-task metadata attached to reports
- MiddlewareStack: ordered steps that may mutate or veto an event
- Notifier: gates, builds, filters and hands events to a delivery
"""

from .configuration import ConfigError, Configuration, load_config
from .event import Event
from .logging import configure_logging, default_logger
from .middleware import MiddlewareStack, run_chain
from .notifier import Notifier
from .request_data import RequestContextStore, request_store
from .types import DeliveryMethod, NotifyOutcome, PipelineResult, PipelineStatus
from .version import __version__

__all__ = [
    "ConfigError",
    "Configuration",
    "DeliveryMethod",
    "Event",
    "MiddlewareStack",
    "Notifier",
    "NotifyOutcome",
    "PipelineResult",
    "PipelineStatus",
    "RequestContextStore",
    "__version__",
    "configure_logging",
    "default_logger",
    "load_config",
    "request_store",
    "run_chain",
]
