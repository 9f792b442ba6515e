"""
Structured JSON Logger
======================

Bounded Context: Observability Infrastructure

One JSON object per log line, written through the standard logging module.

Entry layout:
    {
        "timestamp": "2025-10-24T15:30:45.123456+00:00",
        "level": "ERROR",
        "component": "data_sink",
        "event": "mqtt.publish.failed",
        "message": "Error publishing data to MQTT broker, ...",
        "metadata": {"source_id": "sensor-1", "topic": "...", "attempt": 2},
        "exception": {"type": "MqttCommunicationError", "message": "..."}
    }

Context fields given to bind() are merged into every entry's metadata, so a
sink can tag all of its lines with its source id.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from .events import LogEvent


class StructuredLogger:
    """
    Emits LogEvent-typed JSON entries for one component.

    Attributes:
        component: Component name (e.g., "data_sink", "session")
        context: Metadata merged into every entry
        logger: Underlying logging.Logger
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        context: Optional[Dict[str, Any]] = None
    ):
        self.component = component
        self.context = dict(context or {})
        self.logger = logging.getLogger(f"connector_mqtt.{component}")
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def bind(self, **context: Any) -> "StructuredLogger":
        """Return a logger for the same component with extra context fields."""
        bound = StructuredLogger.__new__(StructuredLogger)
        bound.component = self.component
        bound.context = {**self.context, **context}
        bound.logger = self.logger
        return bound

    def debug(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.DEBUG, event, message, metadata)

    def info(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.INFO, event, message, metadata)

    def warning(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """Exceptions are summarized in the entry, without traceback."""
        self._emit(logging.WARNING, event, message, metadata, exc_info)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """Exceptions are summarized in the entry and their traceback follows it."""
        self._emit(logging.ERROR, event, message, metadata, exc_info, traceback=True)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)

    def _emit(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]],
        exc_info: Optional[BaseException] = None,
        traceback: bool = False
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return

        entry = self.build_entry(level, event, message, metadata, exc_info)
        self.logger.log(
            level,
            json.dumps(entry, default=str),
            exc_info=exc_info if traceback else None
        )

    def build_entry(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': logging.getLevelName(level),
            'component': self.component,
            'event': event.value,
            'message': message,
        }

        fields = {**self.context, **(metadata or {})}
        if fields:
            entry['metadata'] = fields

        if exc_info is not None:
            entry['exception'] = {
                'type': type(exc_info).__name__,
                'message': str(exc_info)
            }
        return entry


class JSONFormatter(logging.Formatter):
    """Entries are already JSON; pass the message through."""

    def format(self, record: logging.LogRecord) -> str:
        line = record.getMessage()
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def create_logger(component: str, level: int = logging.INFO) -> StructuredLogger:
    """
    Create a StructuredLogger for a component.

    Example:
        >>> logger = create_logger("data_sink", level=logging.DEBUG)
        >>> logger.bind(source_id="sensor-1").info(
        ...     event=LogEvent.MQTT_CONNECTED,
        ...     message="Connected to MQTT broker",
        ...     metadata={'broker': 'localhost:1883'}
        ... )
    """
    return StructuredLogger(component=component, level=level)
