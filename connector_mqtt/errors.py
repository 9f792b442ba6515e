"""
Connector Errors
================

Bounded Context: Failure Classification

Only MqttCommunicationError is transient. Everything else raised while
publishing is fatal and reaches the caller unchanged.
"""

from typing import Optional

from .schemas import ConnectResult


class ConnectorError(Exception):
    """Base class for connector errors."""


class MqttCommunicationError(ConnectorError):
    """Broker unreachable or session disrupted during publish (retried)."""


class BrokerConnectionError(ConnectorError):
    """
    Connect to the broker failed (fatal, not retried by the sink).

    Attributes:
        result: Broker result when a CONNACK was received, else None
    """

    def __init__(self, message: str, result: Optional[ConnectResult] = None):
        super().__init__(message)
        self.result = result


class PublishCancelledError(ConnectorError):
    """Publish aborted because cancellation was requested."""
