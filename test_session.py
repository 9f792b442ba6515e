"""Tests for MqttSessionClient against a mocked paho client."""

import threading
from unittest.mock import MagicMock

import paho.mqtt.client as mqtt
import pytest
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.reasoncodes import ReasonCode

from connector_mqtt import (
    ConnectionSettings,
    DataMessage,
    MqttCommunicationError,
    MqttSessionClient,
    PublishCancelledError,
)
from connector_mqtt import session as session_module


@pytest.fixture
def paho_client(monkeypatch):
    client = MagicMock(name="paho_client")
    factory = MagicMock(return_value=client)
    monkeypatch.setattr(session_module.mqtt, "Client", factory)
    client.factory = factory
    return client


@pytest.fixture
def settings():
    return ConnectionSettings(host="broker.local", port=8883, client_id="connector-01")


@pytest.fixture
def message():
    return DataMessage.from_document("telemetry/abc/sensor-1", "sensor-1", {"v": 1})


def connected_session(logger, settings, paho_client):
    session = MqttSessionClient(logger=logger, poll_interval=0.001)
    session.connect_async(settings)
    session._on_connect(paho_client, None, None, ReasonCode(PacketTypes.CONNACK, "Success"))
    return session


def published_info(rc=mqtt.MQTT_ERR_SUCCESS, published=True):
    info = MagicMock(name="message_info")
    info.rc = rc
    info.mid = 7
    info.is_published.return_value = published
    return info


# ===== Connect =====

def test_connect_resolves_on_connack(logger, settings, paho_client):
    session = MqttSessionClient(logger=logger)
    future = session.connect_async(settings)

    assert not future.done()
    paho_client.connect_async.assert_called_once()
    paho_client.loop_start.assert_called_once()
    assert paho_client.factory.call_args.kwargs['protocol'] == mqtt.MQTTv5

    session._on_connect(paho_client, None, None, ReasonCode(PacketTypes.CONNACK, "Success"))

    result = future.result(timeout=1)
    assert result.is_success
    assert session.is_connected()


def test_connect_refused(logger, settings, paho_client):
    session = MqttSessionClient(logger=logger)
    future = session.connect_async(settings)

    session._on_connect(paho_client, None, None, ReasonCode(PacketTypes.CONNACK, "Not authorized"))

    result = future.result(timeout=1)
    assert not result.is_success
    assert result.reason_code == 135
    assert not session.is_connected()


def test_connect_unreachable(logger, settings, paho_client):
    session = MqttSessionClient(logger=logger)
    future = session.connect_async(settings)

    session._on_connect_fail(paho_client, None)

    with pytest.raises(MqttCommunicationError):
        future.result(timeout=1)


def test_credentials_and_tls(logger, paho_client, tmp_path):
    password_file = tmp_path / "password"
    password_file.write_text("s3cret\n")
    sat_file = tmp_path / "sat"
    sat_file.write_bytes(b"token-bytes")

    settings = ConnectionSettings(
        host="broker.local",
        port=8883,
        client_id="connector-01",
        use_tls=True,
        username="connector",
        password_file=str(password_file),
        sat_auth_file=str(sat_file),
        ca_file="/run/ca.crt",
    )
    MqttSessionClient(logger=logger).connect_async(settings)

    paho_client.username_pw_set.assert_called_once_with("connector", "s3cret")
    paho_client.tls_set.assert_called_once_with(ca_certs="/run/ca.crt")

    properties = paho_client.connect_async.call_args.kwargs['properties']
    assert properties.AuthenticationMethod == "K8S-SAT"
    assert properties.AuthenticationData == b"token-bytes"


def test_missing_credential_file_is_fatal(logger, paho_client, tmp_path):
    settings = ConnectionSettings(
        host="broker.local",
        port=1883,
        client_id="connector-01",
        username="connector",
        password_file=str(tmp_path / "missing"),
    )
    with pytest.raises(FileNotFoundError):
        MqttSessionClient(logger=logger).connect_async(settings)


def test_missing_sat_file_is_fatal(logger, paho_client, tmp_path):
    settings = ConnectionSettings(
        host="broker.local",
        port=8883,
        client_id="connector-01",
        sat_auth_file=str(tmp_path / "missing-token"),
    )
    with pytest.raises(FileNotFoundError):
        MqttSessionClient(logger=logger).connect_async(settings)

    paho_client.connect_async.assert_not_called()


def test_disconnect_clears_state(logger, settings, paho_client):
    session = connected_session(logger, settings, paho_client)
    session.disconnect()

    paho_client.disconnect.assert_called_once()
    paho_client.loop_stop.assert_called()
    assert not session.is_connected()


# ===== Publish =====

def test_publish_at_least_once_with_source_property(logger, settings, paho_client, message):
    session = connected_session(logger, settings, paho_client)
    paho_client.publish.return_value = published_info()

    session.publish(message)

    args, kwargs = paho_client.publish.call_args
    assert args == ("telemetry/abc/sensor-1",)
    assert kwargs['payload'] == message.payload
    assert kwargs['qos'] == 1
    assert kwargs['retain'] is False
    assert kwargs['properties'].UserProperty == [("connector-source-id", "sensor-1")]


def test_publish_not_connected_is_communication_error(logger, settings, paho_client, message):
    session = connected_session(logger, settings, paho_client)
    paho_client.publish.return_value = published_info(rc=mqtt.MQTT_ERR_NO_CONN, published=False)

    with pytest.raises(MqttCommunicationError):
        session.publish(message)


def test_publish_while_disconnected_is_not_handed_to_paho(logger, settings, paho_client, message):
    session = connected_session(logger, settings, paho_client)
    session._on_disconnect(paho_client, None, None, ReasonCode(PacketTypes.DISCONNECT, "Unspecified error"))

    with pytest.raises(MqttCommunicationError):
        session.publish(message)

    paho_client.publish.assert_not_called()


def test_failed_retries_leave_nothing_queued(logger, settings, message):
    session = MqttSessionClient(logger=logger)
    session.settings = settings
    session.client = mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=settings.client_id,
        protocol=mqtt.MQTTv5
    )

    for _ in range(5):
        with pytest.raises(MqttCommunicationError):
            session.publish(message)

    assert len(session.client._out_messages) == 0


def test_publish_socket_error_is_communication_error(logger, settings, paho_client, message):
    session = connected_session(logger, settings, paho_client)
    paho_client.publish.side_effect = ConnectionResetError("reset by peer")

    with pytest.raises(MqttCommunicationError):
        session.publish(message)


def test_publish_invalid_topic_is_fatal(logger, settings, paho_client, message):
    session = connected_session(logger, settings, paho_client)
    paho_client.publish.side_effect = ValueError("Publish topic cannot contain wildcards.")

    with pytest.raises(ValueError):
        session.publish(message)


def test_connection_lost_before_ack(logger, settings, paho_client, message):
    session = connected_session(logger, settings, paho_client)
    info = published_info(published=False)
    paho_client.publish.return_value = info

    def drop_connection():
        session._on_disconnect(paho_client, None, None, ReasonCode(PacketTypes.DISCONNECT, "Unspecified error"))
        return False

    info.is_published.side_effect = drop_connection

    with pytest.raises(MqttCommunicationError):
        session.publish(message)


def test_ack_timeout_is_communication_error(logger, settings, paho_client, message):
    session = connected_session(logger, settings, paho_client)
    session.publish_timeout = 0.01
    paho_client.publish.return_value = published_info(published=False)

    with pytest.raises(MqttCommunicationError, match="No acknowledgement"):
        session.publish(message)


def test_cancel_while_waiting_for_ack(logger, settings, paho_client, message):
    session = connected_session(logger, settings, paho_client)
    cancel_event = threading.Event()
    info = published_info(published=False)
    paho_client.publish.return_value = info

    def cancel():
        cancel_event.set()
        return False

    info.is_published.side_effect = cancel

    with pytest.raises(PublishCancelledError):
        session.publish(message, cancel_event)


def test_publish_before_connect_is_fatal(logger, message):
    with pytest.raises(RuntimeError):
        MqttSessionClient(logger=logger).publish(message)


# ===== Reconnect =====

def test_reconnect_waits_for_network_loop(logger, settings, paho_client):
    session = connected_session(logger, settings, paho_client)
    session._on_disconnect(paho_client, None, None, ReasonCode(PacketTypes.DISCONNECT, "Unspecified error"))
    session.reconnect_timeout = 5.0

    restore = threading.Timer(
        0.02,
        session._on_connect,
        args=(paho_client, None, None, ReasonCode(PacketTypes.CONNACK, "Success"))
    )
    restore.start()
    try:
        session.reconnect()
    finally:
        restore.cancel()

    assert session.is_connected()
    paho_client.reconnect.assert_not_called()


def test_reconnect_gives_up_after_timeout(logger, settings, paho_client):
    session = MqttSessionClient(logger=logger, reconnect_timeout=0.01)
    session.connect_async(settings)

    session.reconnect()

    assert not session.is_connected()
    paho_client.reconnect.assert_not_called()


def test_reconnect_noop_when_connected(logger, settings, paho_client):
    session = connected_session(logger, settings, paho_client)
    session.reconnect()
    paho_client.reconnect.assert_not_called()
