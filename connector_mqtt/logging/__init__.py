"""
JSON structured logging for the connector sink.

    >>> from connector_mqtt.logging import LogEvent, create_logger
    >>> logger = create_logger("data_sink").bind(source_id="sensor-1")
    >>> logger.error(
    ...     event=LogEvent.MQTT_PUBLISH_FAILED,
    ...     message="Error publishing data to MQTT broker, reconnecting",
    ...     metadata={'attempt': 1}
    ... )
"""

from .events import LogEvent
from .structured import StructuredLogger, create_logger

__all__ = [
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
