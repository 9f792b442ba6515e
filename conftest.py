"""
Shared test doubles for the connector MQTT sink (no real broker needed).
"""

import logging
import threading
from concurrent.futures import Future
from typing import List, Optional

import pytest

from connector_mqtt import (
    ConnectResult,
    ConnectionSettings,
    DataMessage,
    SessionClient,
    create_logger,
)


class FakeSessionClient(SessionClient):
    """
    In-memory session client.

    Queue exceptions in ``errors`` to make the next publish attempts fail,
    one exception per attempt.
    """

    def __init__(
        self,
        connected: bool = False,
        connect_result=ConnectResult(reason_code=0, reason="Success")
    ):
        self.connected = connected
        self.connect_result = connect_result
        self.errors: List[BaseException] = []

        self.connect_calls: List[ConnectionSettings] = []
        self.attempts: List[DataMessage] = []
        self.published: List[DataMessage] = []
        self.reconnect_calls = 0
        self.disconnect_calls = 0

    def connect_async(self, settings: ConnectionSettings) -> Future:
        self.connect_calls.append(settings)
        future = Future()
        if self.connect_result is None:
            return future  # never resolves
        if isinstance(self.connect_result, BaseException):
            future.set_exception(self.connect_result)
            return future
        self.connected = self.connect_result.is_success
        future.set_result(self.connect_result)
        return future

    def is_connected(self) -> bool:
        return self.connected

    def publish(self, message: DataMessage, cancel_event: Optional[threading.Event] = None) -> None:
        self.attempts.append(message)
        if self.errors:
            raise self.errors.pop(0)
        self.published.append(message)

    def reconnect(self) -> None:
        self.reconnect_calls += 1

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False


class RecordingWait:
    """Backoff wait that records delays instead of sleeping."""

    def __init__(self, cancel_on_call: Optional[int] = None):
        self.cancel_on_call = cancel_on_call
        self.calls: List[float] = []

    def __call__(self, cancel_event: threading.Event, seconds: float) -> bool:
        self.calls.append(seconds)
        if self.cancel_on_call is not None and len(self.calls) >= self.cancel_on_call:
            cancel_event.set()
        return cancel_event.is_set()


@pytest.fixture
def session():
    return FakeSessionClient()


@pytest.fixture
def recording_wait():
    return RecordingWait()


@pytest.fixture
def logger():
    return create_logger("test", level=logging.DEBUG)
