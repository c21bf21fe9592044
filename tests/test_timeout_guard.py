import threading
import time

import pytest

from testcase_runner.execution.timeout import TimeoutGuard


def test_guard_fires_after_deadline() -> None:
    expired = threading.Event()
    guard = TimeoutGuard(50, on_expire=expired.set)
    guard.arm()

    assert expired.wait(2.0)
    assert guard.fired is True
    assert guard.disarm() is False


def test_disarm_before_deadline_prevents_expiry() -> None:
    calls: list[int] = []
    guard = TimeoutGuard(200, on_expire=lambda: calls.append(1))
    guard.arm()

    assert guard.disarm() is True
    time.sleep(0.3)
    assert calls == []
    assert guard.fired is False


def test_disarm_is_idempotent() -> None:
    guard = TimeoutGuard(1000, on_expire=lambda: None)
    guard.arm()

    assert guard.disarm() is True
    assert guard.disarm() is False
    assert guard.disarm() is False


def test_disarm_without_arm_is_noop() -> None:
    guard = TimeoutGuard(1000, on_expire=lambda: None)
    assert guard.disarm() is False
    assert guard.fired is False


def test_guard_can_only_be_armed_once() -> None:
    guard = TimeoutGuard(1000, on_expire=lambda: None)
    guard.arm()
    try:
        with pytest.raises(RuntimeError, match="armed once"):
            guard.arm()
    finally:
        guard.disarm()
