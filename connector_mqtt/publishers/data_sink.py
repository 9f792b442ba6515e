"""
MQTT Data Sink
==============

Bounded Context: Reliable Data Delivery

This module provides the publisher that delivers structured documents from a
single data source to its own topic, at least once.

Design:
- Inherits from BasePublisher (connection management)
- Topic derived once at construction (see connector_mqtt.topics)
- push_data() retries communication failures forever with capped
  super-linear backoff, reconnecting between attempts
- Only MqttCommunicationError is retried; every other error is fatal
- Backoff delay lives in the push_data() call, so concurrent pushes on one
  sink do not interfere

Retry Loop (per push_data call):
    Attempting --ack--> Success
    Attempting --MqttCommunicationError--> Backoff (wait delay)
    Backoff --elapsed--> Reconnecting (delay = min(delay ** 1.02, max))
    Reconnecting --> Attempting
    Attempting/Backoff --cancel_event set--> PublishCancelledError

Example:
    >>> sink = MqttDataSink(
    ...     logger=create_logger("data_sink"),
    ...     session_client=MqttSessionClient(),
    ...     host="localhost",
    ...     port=1883,
    ...     base_topic="telemetry/",
    ...     source_id="sensor-1",
    ... )
    >>> sink.connect()
    >>> sink.push_data({"temperature": 21.5})
"""

import threading
from typing import Callable, Optional, Sequence

from .base import BasePublisher, DEFAULT_CONNECT_TIMEOUT
from ..backoff import BackoffPolicy, DEFAULT_INITIAL_DELAY_MS, DEFAULT_MAX_DELAY_MS
from ..errors import MqttCommunicationError, PublishCancelledError
from ..logging import StructuredLogger, LogEvent
from ..schemas import DataMessage, Document, StringReplacement
from ..session import SessionClient
from ..topics import derive_topic


WaitFunction = Callable[[threading.Event, float], bool]


def wait_on_event(cancel_event: threading.Event, seconds: float) -> bool:
    """Sleep up to ``seconds``; True if cancel_event was set meanwhile."""
    return cancel_event.wait(seconds)


class MqttDataSink(BasePublisher):
    """
    At-least-once publisher for one data source.

    Attributes:
        Same as BasePublisher, plus:
        source_id: Logical origin of the data
        topic: Derived topic (immutable)
        backoff: Retry delay policy
        id: "{client_id}-{host}-{port}-{topic}" for observability
    """

    def __init__(
        self,
        logger: StructuredLogger,
        session_client: SessionClient,
        host: str,
        port: int,
        base_topic: str,
        source_id: str,
        client_id: Optional[str] = None,
        use_tls: bool = False,
        username: Optional[str] = None,
        password_file: Optional[str] = None,
        sat_auth_file: Optional[str] = None,
        ca_file: Optional[str] = None,
        topic_replacements: Optional[Sequence[StringReplacement]] = None,
        initial_backoff_delay_ms: int = DEFAULT_INITIAL_DELAY_MS,
        max_backoff_delay_ms: int = DEFAULT_MAX_DELAY_MS,
        connect_timeout: Optional[float] = DEFAULT_CONNECT_TIMEOUT,
        wait: WaitFunction = wait_on_event
    ):
        """
        Initialize data sink.

        Args:
            logger: Structured logger instance
            session_client: Broker session capability
            host: MQTT broker hostname
            port: MQTT broker port
            base_topic: Topic prefix
            source_id: Logical origin of the data
            client_id: MQTT client ID (random UUID if None)
            use_tls: Enable TLS
            username: MQTT auth username (optional)
            password_file: Password file path (optional)
            sat_auth_file: SAT token file path (optional)
            ca_file: CA certificate path (optional)
            topic_replacements: Ordered rules sanitizing source_id in the topic
            initial_backoff_delay_ms: First retry wait (default: 500)
            max_backoff_delay_ms: Retry wait cap (default: 10000)
            connect_timeout: Connect wait in seconds
            wait: Backoff wait function (cancel_event, seconds) -> cancelled

        Raises:
            TypeError: If a required argument is None
            ValueError: If backoff bounds are invalid
        """
        super().__init__(
            logger=logger,
            session_client=session_client,
            host=host,
            port=port,
            client_id=client_id,
            use_tls=use_tls,
            username=username,
            password_file=password_file,
            sat_auth_file=sat_auth_file,
            ca_file=ca_file,
            connect_timeout=connect_timeout
        )
        if source_id is None:
            raise TypeError("source_id cannot be None")

        self.source_id = source_id
        self.topic_replacements = tuple(topic_replacements or ())
        self.backoff = BackoffPolicy(
            initial_delay_ms=initial_backoff_delay_ms,
            max_delay_ms=max_backoff_delay_ms
        )
        self._wait = wait

        self._topic = derive_topic(base_topic, source_id, self.topic_replacements)
        self._id = f"{self.client_id}-{self.host}-{self.port}-{self._topic}"

    @property
    def id(self) -> str:
        return self._id

    @property
    def topic(self) -> str:
        return self._topic

    def format_message(self, document: Document) -> DataMessage:
        """
        Build the at-least-once message for a document.

        Raises:
            TypeError: If document is None
            ValueError: If document cannot be serialized
        """
        try:
            return DataMessage.from_document(self._topic, self.source_id, document)
        except ValueError as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize document",
                exc_info=e,
                metadata={'topic': self._topic, 'source_id': self.source_id}
            )
            raise

    def push_data(
        self,
        document: Document,
        cancel_event: Optional[threading.Event] = None
    ) -> None:
        """
        Publish a document, retrying until the broker acknowledges it.

        Blocks the calling thread. Returns only once the message is
        acknowledged; communication failures are logged and retried.

        Args:
            document: dict/list (JSON encoded), str or bytes payload
            cancel_event: Set it to abort the retry loop

        Raises:
            PublishCancelledError: cancel_event was set
            TypeError, ValueError: Invalid document
            Exception: Any non-communication error from the session client
        """
        message = self.format_message(document)
        cancel_event = cancel_event or threading.Event()

        delay_ms = self.backoff.initial_delay_ms
        attempt = 0

        while True:
            if cancel_event.is_set():
                self._log_cancelled(attempt)
                raise PublishCancelledError(f"Publish to '{self._topic}' cancelled")

            attempt += 1
            try:
                self.session_client.publish(message, cancel_event)
            except MqttCommunicationError as e:
                self._count('communication_failures')
                self.logger.error(
                    event=LogEvent.MQTT_PUBLISH_FAILED,
                    message=f"Error publishing data to MQTT broker, topic: '{self._topic}', reconnecting...",
                    exc_info=e,
                    metadata={
                        'topic': self._topic,
                        'attempt': attempt,
                        'delay_ms': delay_ms
                    }
                )

                if self._wait(cancel_event, delay_ms / 1000.0):
                    self._log_cancelled(attempt)
                    raise PublishCancelledError(
                        f"Publish to '{self._topic}' cancelled during backoff"
                    ) from e

                delay_ms = self.backoff.next_delay(delay_ms)

                self.logger.info(
                    event=LogEvent.MQTT_RECONNECTING,
                    message="Reconnecting to MQTT broker",
                    metadata={'broker': self.broker, 'next_delay_ms': delay_ms}
                )
                self.session_client.reconnect()
                self._count('reconnects')
                continue
            except PublishCancelledError:
                self._log_cancelled(attempt)
                raise
            except Exception as e:
                self.logger.error(
                    event=LogEvent.MQTT_PUBLISH_ERROR,
                    message=f"Unrecoverable error publishing to topic '{self._topic}'",
                    exc_info=e,
                    metadata={'topic': self._topic, 'attempt': attempt}
                )
                raise

            self._count('published')
            self.logger.debug(
                event=LogEvent.MQTT_PUBLISH_SUCCESS,
                message=f"Published data to MQTT broker, topic: '{self._topic}'.",
                metadata={
                    'topic': self._topic,
                    'attempts': attempt,
                    'bytes': message.size
                }
            )
            return

    def _log_cancelled(self, attempt: int) -> None:
        self.logger.warning(
            event=LogEvent.MQTT_PUBLISH_CANCELLED,
            message="Publish cancelled",
            metadata={'topic': self._topic, 'attempts': attempt}
        )

    def get_stats(self):
        stats = super().get_stats()
        stats['id'] = self._id
        stats['topic'] = self._topic
        return stats
