"""
DataSinkService - Orchestrates document delivery through an MqttDataSink.

Bounded Context: Service wiring
Responsibilities:
  - Build the session client and sink from SinkConfig
  - Read JSON Lines documents from files or streams
  - Push every document, in order, until done or stopped

Threading:
  - push_all() runs in the caller's thread
  - stop() may be called from any thread (or a signal handler); it sets the
    cancel event observed by the sink's retry loop
"""

import json
import threading
from typing import IO, Iterable, Iterator, Optional

from connector_mqtt import (
    LogEvent,
    MqttDataSink,
    MqttSessionClient,
    SessionClient,
    StructuredLogger,
    create_logger,
)

from .config import SinkConfig


def iter_documents(stream: IO[str], name: str = "<stream>") -> Iterator[bytes]:
    """
    Yield one serialized JSON document per non-blank line.

    Each line is checked with json.loads but yielded as its own UTF-8 bytes,
    so the published payload is exactly the text that was read.

    Raises:
        ValueError: If a line is not valid JSON (with name and line number)
    """
    for line_number, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"{name}:{line_number}: invalid JSON document ({e.msg})") from e
        yield line.encode('utf-8')


class DataSinkService:
    """
    Delivers documents from one data source to its MQTT topic.

    Example:
        service = DataSinkService(SinkConfig.from_yaml(path))
        service.start()
        with open("documents.jsonl") as f:
            service.push_all(iter_documents(f, "documents.jsonl"))
        service.stop()
    """

    def __init__(
        self,
        config: SinkConfig,
        session_client: Optional[SessionClient] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self.config = config
        self.logger = (
            logger or create_logger("data_sink", level=config.log_level_value)
        ).bind(source_id=config.source_id)
        self.session_client = session_client or MqttSessionClient(logger=self.logger)

        broker = config.broker
        self.sink = MqttDataSink(
            logger=self.logger,
            session_client=self.session_client,
            host=broker.host,
            port=broker.port,
            client_id=broker.client_id,
            use_tls=broker.use_tls,
            username=broker.username,
            password_file=broker.password_file,
            sat_auth_file=broker.sat_auth_file,
            ca_file=broker.ca_file,
            base_topic=config.topic.base_topic,
            source_id=config.source_id,
            topic_replacements=config.topic.replacements,
            initial_backoff_delay_ms=config.backoff.initial_delay_ms,
            max_backoff_delay_ms=config.backoff.max_delay_ms,
            connect_timeout=broker.connect_timeout,
        )

        self._stop_event = threading.Event()
        self._pushing = False
        self._pushed = 0

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def pushing(self) -> bool:
        """True while a document is being delivered (publish or backoff)."""
        return self._pushing

    def start(self) -> None:
        """Connect the sink (blocks; raises BrokerConnectionError on failure)."""
        self.sink.connect()

    def push_all(self, documents: Iterable) -> int:
        """
        Push documents in order.

        Returns:
            Number of documents acknowledged

        Raises:
            PublishCancelledError: stop() was called mid-way
        """
        for document in documents:
            self._pushing = True
            try:
                self.sink.push_data(document, self._stop_event)
            finally:
                self._pushing = False
            self._pushed += 1
            self.logger.debug(
                event=LogEvent.SINK_DOCUMENT_PUSHED,
                message="Document delivered",
                metadata={'topic': self.sink.topic, 'pushed': self._pushed}
            )
        return self._pushed

    def stop(self) -> None:
        """Cancel in-flight pushes. Safe to call multiple times."""
        self._stop_event.set()

    def shutdown(self) -> None:
        """Stop and disconnect."""
        self.stop()
        self.sink.disconnect()
