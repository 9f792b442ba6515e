"""
Configuration schema for the data sink service.

This module defines the configuration structure for the sink: broker
connection, topic naming, backoff bounds, and logging level.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from connector_mqtt.backoff import (
    BackoffPolicy,
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
)
from connector_mqtt.schemas import StringReplacement


@dataclass(frozen=True)
class BrokerConfig:
    """MQTT broker configuration."""

    host: str
    port: int = 1883
    client_id: Optional[str] = None
    use_tls: bool = False
    username: Optional[str] = None
    password_file: Optional[str] = None
    sat_auth_file: Optional[str] = None
    ca_file: Optional[str] = None
    connect_timeout: float = 30.0

    def __post_init__(self):
        """Validate broker configuration."""
        if not self.host:
            raise ValueError("broker host cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.connect_timeout <= 0:
            raise ValueError(
                f"connect_timeout must be > 0, got {self.connect_timeout}"
            )


@dataclass(frozen=True)
class TopicConfig:
    """Topic naming configuration."""

    base_topic: str = "connectors/data/"
    replacements: List[StringReplacement] = field(default_factory=list)


@dataclass(frozen=True)
class BackoffConfig:
    """Publish retry delay bounds (milliseconds)."""

    initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS

    def __post_init__(self):
        """Validate bounds (same rules as the runtime policy)."""
        BackoffPolicy(
            initial_delay_ms=self.initial_delay_ms,
            max_delay_ms=self.max_delay_ms
        )


@dataclass(frozen=True)
class SinkConfig:
    """
    Main configuration for the data sink service.

    This configuration is loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    # Data source identification
    source_id: str

    broker: BrokerConfig
    topic: TopicConfig = field(default_factory=TopicConfig)
    backoff: BackoffConfig = field(default_factory=BackoffConfig)

    log_level: str = "INFO"

    def __post_init__(self):
        """Validate sink configuration."""
        if not self.source_id:
            raise ValueError("source_id cannot be empty")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(
                f"Invalid log_level: {self.log_level}. "
                f"Must be one of DEBUG, INFO, WARNING, ERROR"
            )

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    @classmethod
    def from_dict(cls, data: dict) -> "SinkConfig":
        """Build configuration from a parsed YAML mapping."""
        if not isinstance(data, dict):
            raise ValueError("Sink configuration must be a mapping")

        if "broker" not in data:
            raise ValueError("Missing required section: broker")
        if "source_id" not in data:
            raise ValueError("Missing required field: source_id")

        broker = BrokerConfig(**data["broker"])

        topic_data = dict(data.get("topic") or {})
        topic = TopicConfig(
            base_topic=topic_data.get("base_topic", TopicConfig.base_topic),
            replacements=StringReplacement.from_list(topic_data.get("replacements", [])),
        )

        backoff = BackoffConfig(**(data.get("backoff") or {}))

        return cls(
            source_id=data["source_id"],
            broker=broker,
            topic=topic,
            backoff=backoff,
            log_level=data.get("log_level", "INFO"),
        )

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "SinkConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            source_id: "opc-ua/line-1/Boiler#3"

            broker:
              host: "localhost"
              port: 8883
              use_tls: true
              username: "connector"
              sat_auth_file: "/var/run/secrets/tokens/mq-sat"
              ca_file: "/var/run/certs/ca.crt"

            topic:
              base_topic: "connectors/data/"
              replacements:
                - {old_value: "/", new_value: "-"}
                - {old_value: "#", new_value: "_"}

            backoff:
              initial_delay_ms: 500
              max_delay_ms: 10000

            log_level: "INFO"
        """
        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data)
