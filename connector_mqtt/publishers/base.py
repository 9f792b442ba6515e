"""
Base MQTT Publisher
==================

Bounded Context: MQTT Infrastructure

This module provides the abstract base class for publishers built on a
SessionClient.

Design:
- Connection management (connect, disconnect, is_connected)
- Connect is idempotent and fails fatally on a non-success result
- QoS 1 (at-least-once) messages
- Structured logging integration

Architecture:
    BasePublisher (abstract)
        ↓
    MqttDataSink (concrete)

Responsibilities:
- Session lifecycle through the SessionClient capability
- Connection parameters (host, port, client id, TLS, credential files)
- Publish statistics
- NOT responsible for: Message formatting (delegated to subclasses)
"""

import threading
import uuid
from abc import ABC, abstractmethod
from concurrent import futures
from typing import Dict, Any, Optional

from ..errors import BrokerConnectionError
from ..logging import StructuredLogger, LogEvent
from ..schemas import ConnectionSettings, ConnectResult, DataMessage
from ..session import SessionClient


DEFAULT_CONNECT_TIMEOUT = 30.0


class BasePublisher(ABC):
    """
    Abstract base class for session-backed publishers.

    Attributes:
        logger: Structured logger instance
        session_client: Broker session capability
        host: MQTT broker hostname
        port: MQTT broker port
        client_id: MQTT client identifier (generated when not supplied)
        use_tls: Enable TLS
        username: MQTT authentication username
        password_file: Password file location
        sat_auth_file: Service account token file location
        ca_file: CA certificate file location
        connect_timeout: Seconds connect() waits for the broker (None = forever)

    Thread Safety:
        connect() is serialized with a lock; stats are lock-guarded.
    """

    def __init__(
        self,
        logger: StructuredLogger,
        session_client: SessionClient,
        host: str,
        port: int,
        client_id: Optional[str] = None,
        use_tls: bool = False,
        username: Optional[str] = None,
        password_file: Optional[str] = None,
        sat_auth_file: Optional[str] = None,
        ca_file: Optional[str] = None,
        connect_timeout: Optional[float] = DEFAULT_CONNECT_TIMEOUT
    ):
        """
        Initialize publisher.

        Args:
            logger: Structured logger for observability
            session_client: Broker session capability
            host: MQTT broker hostname
            port: MQTT broker port
            client_id: Unique client identifier (random UUID if None)
            use_tls: Enable TLS
            username: MQTT auth username (optional)
            password_file: Password file path (optional)
            sat_auth_file: SAT token file path (optional)
            ca_file: CA certificate path (optional)
            connect_timeout: Connect wait in seconds

        Raises:
            TypeError: If session_client or host is None
        """
        if session_client is None:
            raise TypeError("session_client cannot be None")
        if host is None:
            raise TypeError("host cannot be None")

        self.logger = logger
        self.session_client = session_client
        self.host = host
        self.port = port
        self.client_id = client_id if client_id is not None else str(uuid.uuid4())
        self.use_tls = use_tls
        self.username = username
        self.password_file = password_file
        self.sat_auth_file = sat_auth_file
        self.ca_file = ca_file
        self.connect_timeout = connect_timeout

        self._connect_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._stats = {
            'published': 0,
            'communication_failures': 0,
            'reconnects': 0,
        }

    @property
    def broker(self) -> str:
        return f"{self.host}:{self.port}"

    def connection_settings(self) -> ConnectionSettings:
        """Build the settings handed to the session client."""
        return ConnectionSettings(
            host=self.host,
            port=self.port,
            client_id=self.client_id,
            use_tls=self.use_tls,
            username=self.username,
            password_file=self.password_file,
            sat_auth_file=self.sat_auth_file,
            ca_file=self.ca_file
        )

    def connect(self) -> None:
        """
        Connect to the broker unless already connected.

        Blocks the calling thread until the session client reports a result.

        Raises:
            BrokerConnectionError: Non-success result, timeout or unreachable broker

        Example:
            >>> sink = MqttDataSink(...)
            >>> sink.connect()
            >>> sink.connect()  # no-op, already connected
        """
        with self._connect_lock:
            if self.session_client.is_connected():
                return

            self.logger.info(
                event=LogEvent.MQTT_CREDENTIALS,
                message="Session credential file locations",
                metadata={
                    'sat_auth_file': self.sat_auth_file,
                    'ca_file': self.ca_file,
                    'password_file': self.password_file
                }
            )

            future = self.session_client.connect_async(self.connection_settings())
            result = self._wait_for_connect(future)

            if not result.is_success:
                self.logger.error(
                    event=LogEvent.MQTT_CONNECTION_ERROR,
                    message=f"Failed to connect to the MQTT broker, code {result}",
                    metadata={'broker': self.broker, 'client_id': self.client_id}
                )
                raise BrokerConnectionError(
                    f"Failed to connect to the MQTT broker, code {result}",
                    result=result
                )

            self.logger.info(
                event=LogEvent.MQTT_CONNECTED,
                message="Connected to MQTT broker",
                metadata={'broker': self.broker, 'client_id': self.client_id}
            )

    def _wait_for_connect(self, future: futures.Future) -> ConnectResult:
        try:
            return future.result(timeout=self.connect_timeout)
        except futures.TimeoutError as e:
            raise BrokerConnectionError(
                f"Timed out after {self.connect_timeout}s connecting to {self.broker}"
            ) from e
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Failed to connect to broker",
                exc_info=e,
                metadata={'broker': self.broker}
            )
            raise BrokerConnectionError(f"Failed to connect to {self.broker}: {e}") from e

    def disconnect(self) -> None:
        """Disconnect from the broker. Safe to call multiple times."""
        self.session_client.disconnect()
        with self._stats_lock:
            published = self._stats['published']
        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from broker",
            metadata={'published': published}
        )

    def is_connected(self) -> bool:
        """Check if the session is currently connected."""
        return self.session_client.is_connected()

    @abstractmethod
    def format_message(self, *args, **kwargs) -> DataMessage:
        """Build the message to publish."""
        raise NotImplementedError("Subclasses must implement format_message()")

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1

    def get_stats(self) -> Dict[str, Any]:
        """
        Get publisher statistics.

        Example:
            >>> stats = sink.get_stats()
            >>> print(f"Published {stats['published']} messages")
        """
        with self._stats_lock:
            stats = dict(self._stats)
        stats['connected'] = self.session_client.is_connected()
        stats['broker'] = self.broker
        return stats
