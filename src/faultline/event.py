from __future__ import annotations

import os
import traceback as _traceback
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Optional

from .version import __version__

if TYPE_CHECKING:
    from .configuration import Configuration

NOTIFIER_INFO = {"name": "faultline", "version": __version__}


def _in_project(path: str, project_root: Optional[str]) -> bool:
    if not project_root:
        return False
    root = os.path.abspath(project_root)
    return os.path.abspath(path).startswith(root + os.sep)


@dataclass
class Event:
    """
    A captured error on its way through the middleware pipeline.

    Middleware steps may mutate any field, or add metadata tabs via `add_tab`.

    Usage example
    -------------
        event = Event.from_exception(exc, configuration=config)
        event.add_tab("account", {"plan": "pro"})
    """
    error_class: str
    message: str
    severity: str = "warning"
    stacktrace: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, dict[str, Any]] = field(default_factory=dict)
    request_data: dict[str, Any] = field(default_factory=dict)
    app: dict[str, Any] = field(default_factory=dict)
    device: dict[str, Any] = field(default_factory=dict)
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    def add_tab(self, name: str, values: Mapping[str, Any]) -> None:
        """Merge `values` into the metadata tab `name`."""
        self.metadata.setdefault(name, {}).update(values)

    @staticmethod
    def from_exception(
        exc: BaseException,
        *,
        configuration: "Configuration",
        severity: str = "warning",
        metadata: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> "Event":
        frames: list[dict[str, Any]] = []
        for summary in _traceback.extract_tb(exc.__traceback__):
            frame: dict[str, Any] = {
                "file": summary.filename,
                "line": summary.lineno,
                "method": summary.name,
                "in_project": _in_project(summary.filename, configuration.project_root),
            }
            if configuration.send_code and summary.line:
                frame["code"] = summary.line
            frames.append(frame)
        # Innermost frame first
        frames.reverse()

        event = Event(
            error_class=type(exc).__name__,
            message=str(exc),
            severity=severity,
            stacktrace=frames,
            app={
                "version": configuration.app_version,
                "type": configuration.app_type,
                "release_stage": configuration.release_stage,
            },
            device={"hostname": configuration.hostname},
            exception=exc,
        )
        for tab, values in (metadata or {}).items():
            event.add_tab(tab, values)
        return event

    def to_payload(self, api_key: Optional[str]) -> dict[str, Any]:
        """Build the dict handed to the sender."""
        return {
            "api_key": api_key,
            "notifier": dict(NOTIFIER_INFO),
            "events": [
                {
                    "exceptions": [
                        {
                            "error_class": self.error_class,
                            "message": self.message,
                            "stacktrace": [dict(f) for f in self.stacktrace],
                        }
                    ],
                    "severity": self.severity,
                    "app": dict(self.app),
                    "device": dict(self.device),
                    "metadata": {tab: dict(values) for tab, values in self.metadata.items()},
                    "request_data": dict(self.request_data),
                }
            ],
        }
