"""
MQTT Session Client
===================

Bounded Context: MQTT Infrastructure

This module provides the session capability the data sink depends on:
connect, is_connected, publish, reconnect.

Design:
- SessionClient: Abstract capability (the sink only sees this)
- MqttSessionClient: paho-mqtt implementation (MQTT v5)
- Connect is asynchronous: connect_async() returns a Future resolved by the
  paho network thread; callers decide whether and how long to wait
- Publish blocks the calling thread until PUBACK, a lost connection, or
  cancellation
- Credential files are read here (password, SAT token, CA bundle)

Error Classification:
    not connected, paho rc != MQTT_ERR_SUCCESS, socket errors, lost connection
        -> MqttCommunicationError (transient, sink retries)
    set cancel event
        -> PublishCancelledError
    anything else (invalid topic, oversize payload, missing credential file)
        -> propagates unchanged (fatal)

Threading:
    paho network loop runs in its own thread (loop_start/loop_stop).
    Callbacks (_on_connect, _on_disconnect) run in that thread.
    Only that thread reconnects; reconnect() waits for it.
"""

import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Optional

import paho.mqtt.client as mqtt
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.properties import Properties

from .errors import MqttCommunicationError, PublishCancelledError
from .logging import StructuredLogger, LogEvent, create_logger
from .schemas import ConnectionSettings, ConnectResult, DataMessage


SAT_AUTH_METHOD = "K8S-SAT"


class SessionClient(ABC):
    """
    Capability the data sink needs from a broker session.

    Implementations own the connection, keepalive and credential loading.
    """

    @abstractmethod
    def connect_async(self, settings: ConnectionSettings) -> 'Future[ConnectResult]':
        """Start connecting; the future resolves with the broker result."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the session is currently connected."""

    @abstractmethod
    def publish(
        self,
        message: DataMessage,
        cancel_event: Optional[threading.Event] = None
    ) -> None:
        """
        Publish and wait for acknowledgement.

        Raises:
            MqttCommunicationError: Transient communication failure
            PublishCancelledError: cancel_event was set while waiting
        """

    @abstractmethod
    def reconnect(self) -> None:
        """Best-effort reconnect; failures are not reported."""

    @abstractmethod
    def disconnect(self) -> None:
        """Close the session."""


class MqttSessionClient(SessionClient):
    """
    paho-mqtt backed session client.

    Attributes:
        logger: Structured logger instance
        publish_timeout: Max seconds to wait for PUBACK (None = no limit)
        reconnect_timeout: Max seconds reconnect() waits for the network loop
        poll_interval: Seconds between acknowledgement/cancellation checks

    Example:
        >>> session = MqttSessionClient(logger=create_logger("session"))
        >>> result = session.connect_async(settings).result(timeout=30)
        >>> if result.is_success:
        ...     session.publish(message)
    """

    def __init__(
        self,
        logger: Optional[StructuredLogger] = None,
        publish_timeout: Optional[float] = 30.0,
        poll_interval: float = 0.05,
        reconnect_timeout: float = 2.0
    ):
        self.logger = logger or create_logger("session")
        self.publish_timeout = publish_timeout
        self.reconnect_timeout = reconnect_timeout
        self.poll_interval = poll_interval

        self.client: Optional[mqtt.Client] = None
        self.settings: Optional[ConnectionSettings] = None

        self._connected = threading.Event()
        self._connect_future: Optional[Future] = None
        self._lock = threading.Lock()

    # ===== Connection lifecycle =====

    def connect_async(self, settings: ConnectionSettings) -> 'Future[ConnectResult]':
        """
        Configure the paho client and start connecting.

        Raises:
            FileNotFoundError: If the password or SAT token file is missing
        """
        future: Future = Future()

        with self._lock:
            if self.client is not None:
                self.client.loop_stop()
            self.settings = settings
            self.client = self._build_client(settings)
            self._connect_future = future

        self.logger.info(
            event=LogEvent.MQTT_CONNECTING,
            message="Connecting to MQTT broker",
            metadata={
                'broker': settings.broker,
                'client_id': settings.client_id,
                'use_tls': settings.use_tls
            }
        )

        properties = self._connect_properties(settings)

        try:
            self.client.connect_async(
                settings.host,
                settings.port,
                keepalive=settings.keep_alive_seconds,
                clean_start=settings.clean_start,
                properties=properties
            )
            self.client.loop_start()
        except (OSError, ValueError) as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Failed to start connecting to broker",
                exc_info=e,
                metadata={'broker': settings.broker}
            )
            self._resolve_connect(exception=e)

        return future

    def _build_client(self, settings: ConnectionSettings) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=settings.client_id,
            protocol=mqtt.MQTTv5
        )

        if settings.username:
            password = None
            if settings.password_file:
                password = _read_text(settings.password_file)
            client.username_pw_set(settings.username, password)

        if settings.use_tls:
            client.tls_set(ca_certs=settings.ca_file)

        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_disconnect = self._on_disconnect
        return client

    def _connect_properties(self, settings: ConnectionSettings) -> Optional[Properties]:
        """CONNECT properties carrying the SAT token, if one is configured."""
        if not settings.sat_auth_file:
            return None

        properties = Properties(PacketTypes.CONNECT)
        properties.AuthenticationMethod = SAT_AUTH_METHOD
        properties.AuthenticationData = Path(settings.sat_auth_file).read_bytes()
        return properties

    def _resolve_connect(
        self,
        result: Optional[ConnectResult] = None,
        exception: Optional[BaseException] = None
    ) -> None:
        with self._lock:
            future = self._connect_future
            self._connect_future = None

        if future is None or future.done():
            return
        if exception is not None:
            future.set_exception(exception)
        else:
            future.set_result(result)

    @property
    def _broker(self) -> Optional[str]:
        return self.settings.broker if self.settings else None

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def reconnect(self) -> None:
        """
        Wait, up to reconnect_timeout, for the network loop to restore the session.

        The loop thread started by loop_start() owns reconnection; calling
        client.reconnect() from here would race it for the socket. The
        outcome is not reported: the next publish attempt tells whether the
        session is usable again.
        """
        if self.client is None or self._connected.is_set():
            return

        self.logger.info(
            event=LogEvent.MQTT_RECONNECTING,
            message="Waiting for MQTT session to reconnect",
            metadata={'broker': self._broker, 'timeout': self.reconnect_timeout}
        )
        if not self._connected.wait(self.reconnect_timeout):
            self.logger.warning(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="MQTT session not restored yet",
                metadata={'broker': self._broker}
            )

    def disconnect(self) -> None:
        """Disconnect and stop the network loop. Safe to call multiple times."""
        if self.client is None:
            return

        self.client.disconnect()
        self.client.loop_stop()
        self._connected.clear()

    # ===== Publishing =====

    def publish(
        self,
        message: DataMessage,
        cancel_event: Optional[threading.Event] = None
    ) -> None:
        if self.client is None:
            raise RuntimeError("Session not started: call connect_async() first")

        cancel_event = cancel_event or threading.Event()
        if cancel_event.is_set():
            raise PublishCancelledError(f"Publish to '{message.topic}' cancelled")

        # paho queues QoS>0 messages even without a connection and replays
        # them all on reconnect; retries would pile up duplicates.
        if not self._connected.is_set():
            raise MqttCommunicationError(
                f"Not connected to {self._broker}, publish to '{message.topic}' not queued"
            )

        properties = Properties(PacketTypes.PUBLISH)
        properties.UserProperty = list(message.user_properties)

        try:
            info = self.client.publish(
                message.topic,
                payload=message.payload,
                qos=message.qos,
                retain=False,
                properties=properties
            )
        except OSError as e:
            raise MqttCommunicationError(f"Socket error publishing to '{message.topic}': {e}") from e

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise MqttCommunicationError(
                f"Publish to '{message.topic}' failed: {mqtt.error_string(info.rc)}"
            )

        self._wait_for_ack(info, message, cancel_event)

    def _wait_for_ack(
        self,
        info: mqtt.MQTTMessageInfo,
        message: DataMessage,
        cancel_event: threading.Event
    ) -> None:
        deadline = None
        if self.publish_timeout is not None:
            deadline = time.monotonic() + self.publish_timeout

        while not info.is_published():
            if not self._connected.is_set():
                raise MqttCommunicationError(
                    f"Connection lost before acknowledgement (topic '{message.topic}', mid {info.mid})"
                )
            if deadline is not None and time.monotonic() >= deadline:
                raise MqttCommunicationError(
                    f"No acknowledgement after {self.publish_timeout}s (topic '{message.topic}', mid {info.mid})"
                )
            if cancel_event.wait(self.poll_interval):
                raise PublishCancelledError(f"Publish to '{message.topic}' cancelled")

    # ===== MQTT Callbacks (run in MQTT thread) =====

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any = None
    ) -> None:
        result = ConnectResult(reason_code=int(reason_code.value), reason=str(reason_code))

        if result.is_success:
            self._connected.set()
            self.logger.info(
                event=LogEvent.MQTT_CONNECTED,
                message="Connected to MQTT broker",
                metadata={
                    'broker': self._broker,
                    'client_id': self.settings.client_id if self.settings else None
                }
            )
        else:
            self._connected.clear()
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Broker refused connection ({result})",
                metadata={'broker': self._broker}
            )

        self._resolve_connect(result=result)

    def _on_connect_fail(self, client: mqtt.Client, userdata: Any) -> None:
        self.logger.warning(
            event=LogEvent.MQTT_CONNECTION_ERROR,
            message="Unable to reach MQTT broker",
            metadata={'broker': self._broker}
        )
        self._resolve_connect(
            exception=MqttCommunicationError(
                f"Unable to reach MQTT broker at {self._broker}"
            )
        )

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any = None
    ) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from MQTT broker",
            metadata={
                'broker': self._broker,
                'reason_code': str(reason_code)
            }
        )


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding='utf-8').strip()
