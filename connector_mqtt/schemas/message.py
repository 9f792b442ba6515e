"""
Data Message Schema
===================

Bounded Context: Message Construction

This module defines the application message published by the data sink.

Design:
- Frozen dataclass: a message is built once and reused unchanged on every retry
- Payload is the raw serialized document, never re-encoded
- One user property binds the message to its source id
"""

import json
from dataclasses import dataclass
from typing import Any, Tuple, Union


SOURCE_ID_PROPERTY = "connector-source-id"
"""User property name carrying the source id on every published message."""

QOS_AT_LEAST_ONCE = 1

Document = Union[dict, list, str, bytes, bytearray]


def encode_document(document: Any) -> bytes:
    """
    Serialize a structured document to the bytes sent on the wire.

    Args:
        document: dict/list (JSON encoded), str (UTF-8 encoded) or bytes (as is)

    Returns:
        Payload bytes

    Raises:
        TypeError: If document is None
        ValueError: If document cannot be serialized
    """
    if document is None:
        raise TypeError("document cannot be None")

    if isinstance(document, (bytes, bytearray)):
        return bytes(document)

    if isinstance(document, str):
        return document.encode('utf-8')

    try:
        return json.dumps(document).encode('utf-8')
    except (TypeError, ValueError) as e:
        raise ValueError(f"Document is not JSON serializable: {e}") from e


@dataclass(frozen=True)
class DataMessage:
    """
    Immutable MQTT application message.

    Attributes:
        topic: Destination topic
        payload: Serialized document bytes
        source_id: Logical origin of the data
        qos: Quality of Service (always at-least-once)

    Example:
        >>> msg = DataMessage.from_document(
        ...     topic="telemetry/<hash>/sensor-1",
        ...     source_id="sensor-1",
        ...     document={"temperature": 21.5}
        ... )
        >>> msg.user_properties
        (('connector-source-id', 'sensor-1'),)
    """
    topic: str
    payload: bytes
    source_id: str
    qos: int = QOS_AT_LEAST_ONCE

    @property
    def user_properties(self) -> Tuple[Tuple[str, str], ...]:
        return ((SOURCE_ID_PROPERTY, self.source_id),)

    @property
    def size(self) -> int:
        return len(self.payload)

    @classmethod
    def from_document(cls, topic: str, source_id: str, document: Document) -> 'DataMessage':
        """Build an at-least-once message from a structured document."""
        return cls(topic=topic, payload=encode_document(document), source_id=source_id)
