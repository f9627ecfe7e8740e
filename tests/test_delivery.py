from __future__ import annotations

import logging
import threading
from typing import Any

import pytest

from faultline.configuration import Configuration
from faultline.delivery import SynchronousDelivery, ThreadQueueDelivery, make_delivery
from faultline.types import DeliveryMethod

LOGGER_NAME = "tests.faultline.delivery"


def _make_config(**kwargs) -> Configuration:
    kwargs.setdefault("logger", logging.getLogger(LOGGER_NAME))
    kwargs.setdefault("endpoint", "https://errors.example.test")
    return Configuration(**kwargs)


def test_make_delivery_picks_by_method() -> None:
    sender = lambda endpoint, payload, config: None  # noqa: E731
    assert isinstance(make_delivery(_make_config(delivery_method=DeliveryMethod.SYNCHRONOUS), sender), SynchronousDelivery)
    assert isinstance(make_delivery(_make_config(), sender), ThreadQueueDelivery)


def test_synchronous_delivery_calls_sender_inline() -> None:
    calls: list[tuple[str, dict[str, Any], str]] = []
    cfg = _make_config()

    def sender(endpoint: str, payload: dict[str, Any], config: Configuration) -> None:
        calls.append((endpoint, payload, threading.current_thread().name))

    SynchronousDelivery(cfg, sender).deliver({"n": 1})

    assert calls == [("https://errors.example.test", {"n": 1}, threading.current_thread().name)]


def test_sender_failures_are_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    def sender(endpoint: str, payload: dict[str, Any], config: Configuration) -> None:
        raise ConnectionError("refused")

    SynchronousDelivery(_make_config(), sender).deliver({"n": 1})

    messages = [r.getMessage() for r in caplog.records if r.name == LOGGER_NAME]
    assert len(messages) == 1
    assert "refused" in messages[0]
    assert "ConnectionError" in messages[0]


def test_thread_queue_delivery_sends_in_background() -> None:
    calls: list[tuple[int, str]] = []
    cfg = _make_config()

    def sender(endpoint: str, payload: dict[str, Any], config: Configuration) -> None:
        calls.append((payload["n"], threading.current_thread().name))

    delivery = ThreadQueueDelivery(cfg, sender)
    for n in range(3):
        delivery.deliver({"n": n})
    delivery.flush()

    assert [n for n, _ in calls] == [0, 1, 2]
    assert {name for _, name in calls} == {"faultline-delivery"}


def test_thread_queue_worker_survives_sender_failure() -> None:
    calls: list[int] = []

    def sender(endpoint: str, payload: dict[str, Any], config: Configuration) -> None:
        if payload["n"] == 0:
            raise TimeoutError("slow")
        calls.append(payload["n"])

    delivery = ThreadQueueDelivery(_make_config(), sender)
    delivery.deliver({"n": 0})
    delivery.deliver({"n": 1})
    delivery.flush()

    assert calls == [1]
