"""
Log event names for the connector sink.

Every structured entry carries one of these in its "event" field, named
<area>.<subject>[.<outcome>] with area one of mqtt, sink, error. Filter on
the value in the log backend, e.g. event = "mqtt.publish.failed" to count
retried publishes per source_id.
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Event names emitted by the sink, session and runner.

    Categories:
    - mqtt.*: MQTT broker interactions
    - sink.*: Data sink processing
    - error.*: Error conditions
    """

    # ========== MQTT Events ==========
    MQTT_CONNECTING = "mqtt.connecting"
    """Connection attempt to broker started."""

    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost or closed."""

    MQTT_CREDENTIALS = "mqtt.credentials"
    """Credential file locations used for the session."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message acknowledged by broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Publish failed with a transient communication error."""

    MQTT_PUBLISH_CANCELLED = "mqtt.publish.cancelled"
    """Publish aborted by cancellation."""

    MQTT_RECONNECTING = "mqtt.reconnecting"
    """Attempting to reconnect to broker."""

    # ========== Sink Events ==========
    SINK_DOCUMENT_PUSHED = "sink.document.pushed"
    """Document delivered to the sink topic."""

    # ========== Error Events ==========
    SERIALIZATION_ERROR = "error.serialization"
    """Failed to serialize a document to bytes."""

    DOCUMENT_READ_ERROR = "error.document_read"
    """Failed to read or parse an input document."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Non-transient error during message publication."""

