"""
connector_service - Data sink service wiring

Bounded Context: Process-level configuration and orchestration
Responsibilities:
  - YAML configuration (SinkConfig)
  - Building the MqttDataSink and its session client
  - Reading JSON Lines documents and pushing them in order
"""

from .config import BackoffConfig, BrokerConfig, SinkConfig, TopicConfig
from .service import DataSinkService, iter_documents

__all__ = [
    "BackoffConfig",
    "BrokerConfig",
    "SinkConfig",
    "TopicConfig",
    "DataSinkService",
    "iter_documents",
]
