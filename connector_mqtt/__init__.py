"""
Connector MQTT Sink Package
===========================

Bounded Context: Reliable Delivery of Connector Data

This package publishes structured documents produced by a data connector to
an MQTT broker, one topic per data source, with at-least-once delivery.

Architecture:
- topics: Deterministic topic naming (hash + sanitized source id)
- backoff: Retry delay policy
- session: Session capability + paho-mqtt implementation
- publishers/: MqttDataSink (retry/reconnect loop)
- schemas/: Immutable data structures
- logging/: Structured JSON logging for observability

Public API
----------
Topics:
    derive_topic, sanitize_source_id, source_id_digest

Schemas:
    StringReplacement, ConnectionSettings, ConnectResult, DataMessage

Session:
    SessionClient, MqttSessionClient

Publishers:
    BasePublisher, MqttDataSink

Errors:
    ConnectorError, MqttCommunicationError, BrokerConnectionError,
    PublishCancelledError

Logging:
    LogEvent, StructuredLogger, create_logger

Example:
    >>> from connector_mqtt import MqttDataSink, MqttSessionClient, create_logger
    >>> from connector_mqtt.schemas import StringReplacement
    >>>
    >>> logger = create_logger("data_sink")
    >>> sink = MqttDataSink(
    ...     logger=logger,
    ...     session_client=MqttSessionClient(logger=logger),
    ...     host="localhost",
    ...     port=1883,
    ...     base_topic="telemetry/",
    ...     source_id="Device/A",
    ...     topic_replacements=[StringReplacement("/", "-")],
    ... )
    >>> sink.connect()
    >>> sink.push_data({"temperature": 21.5})
"""

__version__ = "1.0.0"

# Schemas
from .schemas import (
    StringReplacement,
    ConnectionSettings,
    ConnectResult,
    DataMessage,
)

# Topics
from .topics import derive_topic, sanitize_source_id, source_id_digest

# Backoff
from .backoff import BackoffPolicy

# Errors
from .errors import (
    ConnectorError,
    MqttCommunicationError,
    BrokerConnectionError,
    PublishCancelledError,
)

# Session
from .session import SessionClient, MqttSessionClient

# Publishers
from .publishers import BasePublisher, MqttDataSink

# Logging
from .logging import (
    LogEvent,
    StructuredLogger,
    create_logger,
)

__all__ = [
    '__version__',
    # Schemas
    'StringReplacement',
    'ConnectionSettings',
    'ConnectResult',
    'DataMessage',
    # Topics
    'derive_topic',
    'sanitize_source_id',
    'source_id_digest',
    # Backoff
    'BackoffPolicy',
    # Errors
    'ConnectorError',
    'MqttCommunicationError',
    'BrokerConnectionError',
    'PublishCancelledError',
    # Session
    'SessionClient',
    'MqttSessionClient',
    # Publishers
    'BasePublisher',
    'MqttDataSink',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
