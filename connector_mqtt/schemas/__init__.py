"""
Connector MQTT Schemas
======================

Bounded Context: Data Structures

This module defines immutable, typed data structures for the MQTT data sink.

Design:
- Frozen dataclasses (immutability)
- Type hints for all fields
- Validation in __post_init__
- from_dict() for configuration loading

Public API
----------
Topic Types:
    StringReplacement: Case-insensitive literal replacement rule

Connection Types:
    ConnectionSettings: Broker connection parameters
    ConnectResult: Connect outcome (reason code)

Message Types:
    DataMessage: At-least-once application message
    SOURCE_ID_PROPERTY: User property name carrying the source id
    encode_document: Document serialization helper
"""

from .topic import StringReplacement
from .settings import ConnectionSettings, ConnectResult
from .message import (
    SOURCE_ID_PROPERTY,
    QOS_AT_LEAST_ONCE,
    DataMessage,
    Document,
    encode_document,
)

__all__ = [
    # Topic types
    'StringReplacement',
    # Connection types
    'ConnectionSettings',
    'ConnectResult',
    # Message types
    'SOURCE_ID_PROPERTY',
    'QOS_AT_LEAST_ONCE',
    'DataMessage',
    'Document',
    'encode_document',
]
