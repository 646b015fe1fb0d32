"""Shared fixtures for the bridge tests."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from netatmo_mqtt.context import BridgeContext
from netatmo_mqtt.credentials import Credential, CredentialStore


def make_response(status_code: int = 200, json_data: Any = None, text: str | None = None) -> MagicMock:
    """requests.Response stand-in."""
    r = MagicMock()
    r.status_code = status_code
    if json_data is None:
        r.json.side_effect = ValueError("Expecting value")
        r.text = text or ""
    else:
        r.json.return_value = json_data
        r.text = text if text is not None else json.dumps(json_data)
    r.content = r.text.encode("utf-8")
    return r


@pytest.fixture
def token_payload() -> dict:
    return {
        "access_token": "new-access",
        "refresh_token": "new-refresh",
        "expires_in": 10800,
        "expire_in": 10800,
        "scope": ["read_station"],
    }


@pytest.fixture
def station_payload() -> dict:
    return {
        "status": "ok",
        "time_server": 1700000000,
        "body": {
            "devices": [
                {
                    "_id": "70:ee:50:00:00:01",
                    "type": "NAMain",
                    "dashboard_data": {
                        "Temperature": 21.5,
                        "CO2": 410,
                        "Humidity": 48,
                        "Noise": 35,
                        "Pressure": 1013.0,
                        "time_utc": 1700000000,
                    },
                    "modules": [
                        {
                            "_id": "02:00:00:00:00:02",
                            "type": "NAModule1",
                            "battery_percent": 87,
                            "dashboard_data": {"Temperature": -3.2, "Humidity": 91},
                        },
                        {
                            "_id": "05:00:00:00:00:03",
                            "type": "NAModule3",
                            "battery_percent": 64,
                            "dashboard_data": {"Rain": 0.0, "sum_rain_24": 1.2},
                        },
                    ],
                }
            ],
            "user": {"mail": "someone@example.com"},
        },
    }


@pytest.fixture
def token_file(tmp_path):
    return tmp_path / "token.json"


@pytest.fixture
def store(token_file) -> CredentialStore:
    return CredentialStore(str(token_file))


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()


@pytest.fixture
def expired_ctx() -> BridgeContext:
    return BridgeContext(credential=Credential("old-access", "old-refresh", expires_at=0.0))


@pytest.fixture(name="make_response")
def make_response_fixture():
    return make_response


@pytest.fixture
def mock_paho_publisher():
    """MqttPublisher on top of a mocked paho client."""
    from netatmo_mqtt.publisher import MqttPublisher

    with patch("paho.mqtt.client.Client") as mock_client_class:
        mock_client_class.return_value = MagicMock()
        yield MqttPublisher(host="broker", base_topic="netatmo")
