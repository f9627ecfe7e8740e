from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class DeliveryMethod(str, Enum):
    """How a surviving event is handed to the sender."""
    THREAD_QUEUE = "thread_queue"
    SYNCHRONOUS = "synchronous"


class PipelineStatus(str, Enum):
    """Result of running a middleware stack over one event."""
    DELIVERED = "delivered"
    HALTED = "halted"


class NotifyOutcome(str, Enum):
    """What happened to a single notify attempt."""
    DELIVERED = "delivered"
    HALTED = "halted"
    SUPPRESSED = "suppressed"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineResult:
    """
    Outcome of a middleware run.

    Usage example
    -------------
        result = stack.run(event, deliver)
        if result.halted:
            print(f"vetoed by {result.halted_by}")
    """
    status: PipelineStatus
    halted_by: Optional[str] = None  # name of the step that did not call next
    value: Any = None

    @property
    def halted(self) -> bool:
        return self.status == PipelineStatus.HALTED
