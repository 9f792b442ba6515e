"""
MQTT Publishers
==============

Bounded Context: Message Production

Design:
- BasePublisher: Abstract base with connection management
- MqttDataSink: At-least-once document publisher with backoff and reconnect
- Separation of concerns: Publishers format, session client publishes

Public API
----------
    BasePublisher: Abstract publisher (for custom publishers)
    MqttDataSink: Reliable data sink for one source
"""

from .base import BasePublisher
from .data_sink import MqttDataSink, wait_on_event

__all__ = [
    'BasePublisher',
    'MqttDataSink',
    'wait_on_event',
]
