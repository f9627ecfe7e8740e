from __future__ import annotations

import logging
import os
import re
import socket
import threading
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import yaml

from .logging import default_logger
from .middleware import MiddlewareStack
from .redaction import ParamsFilter
from .request_data import RequestContextStore, request_store
from .steps import callbacks_step, ignore_classes_step, request_data_step
from .types import DeliveryMethod

LOG_PREFIX = "** [Faultline] "

API_KEY_ENV = "FAULTLINE_API_KEY"
API_KEY_PATTERN = re.compile(r"[0-9a-f]{32}")

DEFAULT_ENDPOINT = "https://notify.faultline.dev"
DEFAULT_TIMEOUT = 15.0

# Platforms whose hostnames are throwaway container ids (Heroku sets DYNO).
EPHEMERAL_HOST_MARKERS = ("DYNO",)

DEFAULT_PARAMS_FILTERS: frozenset[ParamsFilter] = frozenset(
    {
        re.compile("authorization", re.IGNORECASE),
        re.compile("cookie", re.IGNORECASE),
        re.compile("password", re.IGNORECASE),
        re.compile("secret", re.IGNORECASE),
        "wsgi.input",
    }
)

# Keys a config file may not set; they hold live objects.
_NON_FILE_FIELDS = frozenset({"logger", "before_notify_callbacks"})

# Scalar keys a YAML file may spell as numbers (e.g. an all-digit api_key).
_STRING_FIELDS = ("api_key", "release_stage", "endpoint", "app_version", "app_type", "project_root", "hostname")


class ConfigError(ValueError):
    """Raised when notifier configuration is missing or invalid."""


def default_hostname(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Hostname to report, or None on ephemeral-host platforms."""
    env = os.environ if environ is None else environ
    if any(marker in env for marker in EPHEMERAL_HOST_MARKERS):
        return None
    return socket.gethostname()


def _as_names(key: str, value: Any) -> list[str]:
    """A single scalar means one entry; lists and sets are taken item by item."""
    if value is None:
        return []
    if isinstance(value, (str, int, float)):
        return [str(value)]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(v) for v in value]
    raise ConfigError(f"{key} must be a name or a list of names, got {type(value).__name__}")

@dataclass(eq=False)
class Configuration:
    """
    Runtime settings for the notifier.

    One instance is created at process startup and shared by reference. Plain
    attributes may be assigned directly before traffic starts; once requests are
    in flight use `update()` and the set helpers, which hold the config lock.

    Parameters
    ----------
    api_key
        32-char lowercase hex project key. Defaults to $FAULTLINE_API_KEY.
    release_stage
        Deployment label of this process, e.g. "production".
    notify_release_stages
        Stages that may notify. None means every stage notifies.
    params_filters
        Keys (case-insensitive substrings or compiled patterns) whose values are
        replaced by "[FILTERED]" before delivery.
    ignore_classes
        Error class names that are never reported.
    delivery_method
        Background thread queue or synchronous delivery.

    Notes
    -----
    Each configuration builds its own `middleware` stack (pre-loaded with the
    before-notify callbacks step); add steps to it with `use`. It cannot be
    passed in or replaced through `update`.

    Usage example
    -------------
        config = Configuration(api_key="0123456789abcdef0123456789abcdef",
                               release_stage="staging",
                               notify_release_stages={"production"})
        config.should_notify_release_stage()  # False, logs a warning
    """

    api_key: Optional[str] = field(default_factory=lambda: os.environ.get(API_KEY_ENV))
    endpoint: str = DEFAULT_ENDPOINT

    release_stage: Optional[str] = None
    notify_release_stages: Optional[set[str]] = None

    auto_notify: bool = True
    send_environment: bool = False
    send_code: bool = True

    params_filters: set[ParamsFilter] = field(default_factory=lambda: set(DEFAULT_PARAMS_FILTERS))
    ignore_classes: set[str] = field(default_factory=set)

    proxy_host: Optional[str] = None
    proxy_port: Optional[int] = None
    proxy_user: Optional[str] = None
    proxy_password: Optional[str] = field(default=None, repr=False)
    ca_file: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    delivery_method: DeliveryMethod = DeliveryMethod.THREAD_QUEUE

    project_root: Optional[str] = None
    app_version: Optional[str] = None
    app_type: Optional[str] = None
    hostname: Optional[str] = field(default_factory=default_hostname)

    logger: logging.Logger = field(default_factory=default_logger, repr=False)
    middleware: MiddlewareStack = field(init=False, repr=False)
    before_notify_callbacks: list[Callable[..., Any]] = field(default_factory=list, repr=False)

    store: RequestContextStore = field(default=request_store, repr=False)

    def __post_init__(self) -> None:
        """Build the pipelines and the lock guarding runtime mutation."""
        self._lock = threading.RLock()

        self._internal_middleware = MiddlewareStack()
        self._internal_middleware.use(ignore_classes_step(self))
        self._internal_middleware.use(request_data_step(self))

        self.middleware = MiddlewareStack()
        self.middleware.use(callbacks_step(self))

    @property
    def internal_middleware(self) -> MiddlewareStack:
        """Framework-owned stack; always runs before (and around) `middleware`."""
        return self._internal_middleware

    # ------------------------------------------------------------------
    # Gating
    # ------------------------------------------------------------------

    def should_notify_release_stage(self) -> bool:
        """Return True unless this release stage is excluded from notifying."""
        with self._lock:
            stage = self.release_stage
            allowed = None if self.notify_release_stages is None else set(self.notify_release_stages)
        if stage is None or allowed is None or stage in allowed:
            return True
        self.warn(f"Not notifying in release stage {stage}")
        return False

    def valid_api_key(self) -> bool:
        """Check the API key format locally (no network)."""
        api_key = self.api_key
        if api_key is None:
            self.warn("No API key configured, couldn't notify")
            return False
        if not isinstance(api_key, str) or API_KEY_PATTERN.fullmatch(api_key) is None:
            self.warn(f"Your API key ({api_key}) is not valid, couldn't notify")
            return False
        return True

    # ------------------------------------------------------------------
    # Lock-guarded mutation
    # ------------------------------------------------------------------

    def update(self, **changes: Any) -> None:
        """
        Assign several fields atomically.

        Usage example
        -------------
            config.update(release_stage="production", notify_release_stages={"production"})
        """
        known = {f.name for f in fields(self) if f.init}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration field(s): {', '.join(unknown)}")
        with self._lock:
            for name, value in changes.items():
                setattr(self, name, value)

    def add_params_filter(self, flt: ParamsFilter) -> None:
        with self._lock:
            self.params_filters.add(flt)

    def params_filters_snapshot(self) -> frozenset[ParamsFilter]:
        with self._lock:
            return frozenset(self.params_filters)

    def add_ignore_class(self, name: str) -> None:
        with self._lock:
            self.ignore_classes.add(name)

    def remove_ignore_class(self, name: str) -> None:
        with self._lock:
            self.ignore_classes.discard(name)

    def is_ignored(self, error_class: str) -> bool:
        with self._lock:
            return error_class in self.ignore_classes

    # ------------------------------------------------------------------
    # Request data (delegates to the per-context store)
    # ------------------------------------------------------------------

    def request_data(self) -> dict[str, Any]:
        return self.store.get()

    def set_request_data(self, key: str, value: Any) -> None:
        self.store.set(key, value)

    def unset_request_data(self, key: str) -> None:
        self.store.unset(key)

    def clear_request_data(self) -> None:
        self.store.clear()

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def _log(self, level: int, message: str) -> None:
        try:
            self.logger.log(level, f"{LOG_PREFIX}{message}")
        except Exception:
            # A broken log sink must never take the host application down.
            return

    def info(self, message: str) -> None:
        self._log(logging.INFO, message)

    def warn(self, message: str) -> None:
        self._log(logging.WARNING, message)

    def debug(self, message: str) -> None:
        self._log(logging.DEBUG, message)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], **overrides: Any) -> "Configuration":
        """
        Build a configuration from a plain mapping (e.g. a parsed YAML file).

        Notes
        -----
        - ``notify_release_stages`` and ``ignore_classes`` lists become sets.
        - ``params_filters`` entries are added to the default filters.
        - Unknown keys raise ConfigError.
        """
        allowed = {f.name for f in fields(cls) if f.init} - _NON_FILE_FIELDS - {"store"}
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

        kwargs: dict[str, Any] = dict(data)
        for key in _STRING_FIELDS:
            if kwargs.get(key) is not None:
                kwargs[key] = str(kwargs[key])
        for key in ("notify_release_stages", "ignore_classes"):
            if kwargs.get(key) is not None:
                kwargs[key] = set(_as_names(key, kwargs[key]))
        if "params_filters" in kwargs:
            kwargs["params_filters"] = set(DEFAULT_PARAMS_FILTERS) | set(_as_names("params_filters", kwargs["params_filters"]))
        if "delivery_method" in kwargs:
            try:
                kwargs["delivery_method"] = DeliveryMethod(kwargs["delivery_method"])
            except ValueError as error:
                valid = ", ".join(m.value for m in DeliveryMethod)
                raise ConfigError(
                    f"Invalid delivery_method {kwargs['delivery_method']!r}; expected one of: {valid}"
                ) from error
        if "timeout" in kwargs:
            try:
                kwargs["timeout"] = float(kwargs["timeout"])
            except (TypeError, ValueError) as error:
                raise ConfigError(f"Invalid timeout {kwargs['timeout']!r}") from error

        kwargs.update(overrides)
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "Configuration":
        """
        Create a configuration from environment variables.

        Supported variables:
        - FAULTLINE_API_KEY
        - FAULTLINE_RELEASE_STAGE
        - FAULTLINE_NOTIFY_RELEASE_STAGES: comma-separated
        - FAULTLINE_ENDPOINT
        - FAULTLINE_TIMEOUT: float, invalid values fall back to the default

        Usage example
        -------------
            config = Configuration.from_env()
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {
            "api_key": env.get(API_KEY_ENV),
            "release_stage": env.get("FAULTLINE_RELEASE_STAGE") or None,
            "endpoint": env.get("FAULTLINE_ENDPOINT") or DEFAULT_ENDPOINT,
            "hostname": default_hostname(env),
        }

        stages_raw = env.get("FAULTLINE_NOTIFY_RELEASE_STAGES", "")
        if stages_raw.strip():
            kwargs["notify_release_stages"] = {s.strip() for s in stages_raw.split(",") if s.strip()}

        timeout = DEFAULT_TIMEOUT
        timeout_raw = env.get("FAULTLINE_TIMEOUT", "")
        if timeout_raw.strip():
            try:
                timeout = float(timeout_raw)
            except ValueError:
                timeout = DEFAULT_TIMEOUT
        kwargs["timeout"] = timeout

        kwargs.update(overrides)
        return cls(**kwargs)


def load_config(path: Path, **overrides: Any) -> Configuration:
    """
    Load a configuration from a YAML file.

    Usage example
    -------------
        config = load_config(Path("faultline.yaml"), logger=my_logger)
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level.")
    return Configuration.from_mapping(data, **overrides)
