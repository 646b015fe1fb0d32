"""Tests for the MQTT publisher."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from netatmo_mqtt.errors import MqttConnectError
from netatmo_mqtt.publisher import MqttPublisher


@pytest.fixture
def mock_paho():
    with patch("paho.mqtt.client.Client") as mock_client_class:
        client = MagicMock()
        mock_client_class.return_value = client
        yield client


@pytest.fixture
def publisher(mock_paho):
    return MqttPublisher(host="broker", user="u", password="p", base_topic="netatmo", qos=1, retain=True)


def test_credentials_and_last_will(mock_paho, publisher):
    mock_paho.username_pw_set.assert_called_once_with("u", password="p")
    mock_paho.will_set.assert_called_once_with("netatmo/bridge/status", payload="offline", qos=0, retain=True)


def test_no_credentials_without_user(mock_paho):
    MqttPublisher(host="broker")

    mock_paho.username_pw_set.assert_not_called()


def test_disconnected_publisher_drops_pairs(mock_paho, publisher):
    n = publisher.publish_pairs([("netatmo/AA/type", "NAMain")])

    assert n == 0
    mock_paho.publish.assert_not_called()


def test_connected_publisher_sends_every_pair(mock_paho, publisher):
    publisher._on_connect(mock_paho, None, {}, 0)
    mock_paho.publish.reset_mock()

    n = publisher.publish_pairs([("netatmo/AA/type", "NAMain"), ("netatmo/AA/CO2", "410")])

    assert n == 2
    mock_paho.publish.assert_any_call("netatmo/AA/type", payload=b"NAMain", qos=1, retain=True)
    mock_paho.publish.assert_any_call("netatmo/AA/CO2", payload=b"410", qos=1, retain=True)


def test_connect_announces_online(mock_paho, publisher):
    publisher._on_connect(mock_paho, None, {}, 0)

    assert publisher.connected
    mock_paho.publish.assert_called_once_with("netatmo/bridge/status", payload="online", qos=0, retain=True)


def test_refused_connect_stays_disconnected(mock_paho, publisher):
    publisher._on_connect(mock_paho, None, {}, 5)

    assert not publisher.connected


def test_unexpected_disconnect_counts_reconnects(mock_paho, publisher):
    publisher._on_connect(mock_paho, None, {}, 0)
    publisher._on_disconnect(mock_paho, None, 7)

    assert not publisher.connected
    assert publisher.reconnects == 1
    assert publisher.publish_pairs([("netatmo/AA/type", "NAMain")]) == 0


def test_connect_waits_for_connack(mock_paho, publisher):
    mock_paho.connect.side_effect = lambda *a, **kw: publisher._on_connect(mock_paho, None, {}, 0)

    publisher.connect()

    mock_paho.connect.assert_called_once_with("broker", 1883, keepalive=30)
    mock_paho.loop_start.assert_called_once()
    assert publisher.connected


def test_connect_failure_raises(mock_paho, publisher):
    mock_paho.connect.side_effect = ConnectionRefusedError("refused")

    with pytest.raises(MqttConnectError):
        publisher.connect()


def test_close_is_idempotent(mock_paho, publisher):
    publisher._on_connect(mock_paho, None, {}, 0)

    publisher.close()
    publisher.close()

    mock_paho.disconnect.assert_called_once()
    mock_paho.loop_stop.assert_called_once()
    mock_paho.publish.assert_called_with("netatmo/bridge/status", payload="offline", qos=0, retain=True)
    assert not publisher.connected


def test_refused_first_connect_is_not_recorded(mock_paho, publisher):
    publisher._on_connect(mock_paho, None, {}, 5)

    assert publisher.refused_rc is None


def test_refused_reconnect_stops_publishing(mock_paho, publisher):
    publisher._on_connect(mock_paho, None, {}, 0)
    publisher._on_disconnect(mock_paho, None, 1)
    publisher._on_connect(mock_paho, None, {}, 5)
    mock_paho.publish.reset_mock()

    with pytest.raises(MqttConnectError, match="rc=5"):
        publisher.publish_pairs([("netatmo/AA/type", "NAMain")])

    mock_paho.publish.assert_not_called()


def test_successful_reconnect_clears_refusal(mock_paho, publisher):
    publisher._on_connect(mock_paho, None, {}, 0)
    publisher._on_connect(mock_paho, None, {}, 5)
    publisher._on_connect(mock_paho, None, {}, 0)

    assert publisher.refused_rc is None
    assert publisher.publish_pairs([("netatmo/AA/type", "NAMain")]) == 1


def test_disconnect_mid_batch_drops_the_rest(mock_paho, publisher):
    publisher._on_connect(mock_paho, None, {}, 0)
    mock_paho.publish.reset_mock()

    def drop_after_first(*args, **kwargs):
        publisher._on_disconnect(mock_paho, None, 1)

    mock_paho.publish.side_effect = drop_after_first

    n = publisher.publish_pairs([("netatmo/AA/type", "NAMain"), ("netatmo/AA/CO2", "410"), ("netatmo/AA/Noise", "35")])

    assert n == 1
    mock_paho.publish.assert_called_once()
