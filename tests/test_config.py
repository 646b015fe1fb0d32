"""Tests for settings loading."""

from __future__ import annotations

import pytest

from netatmo_mqtt.config import DEFAULT_BASE_URL, load_env, load_settings
from netatmo_mqtt.errors import ConfigError

REQUIRED_ENV = {"CLIENT_ID": "cid", "CLIENT_SECRET": "secret", "MQTT_HOST": "broker"}


def test_defaults():
    s = load_settings([], REQUIRED_ENV)

    assert s.client_id == "cid"
    assert s.client_secret == "secret"
    assert s.mqtt_host == "broker"
    assert s.base_url == DEFAULT_BASE_URL
    assert s.interval == 300
    assert s.topic_prefix == "netatmo"
    assert s.mqtt_port == 1883
    assert s.mqtt_user == ""
    assert s.token_file == "token.json"
    assert s.token_margin == 800
    assert s.refresh_token == ""
    assert not s.mqtt_retain


def test_environment_overrides():
    env = dict(REQUIRED_ENV, BASEURL="https://proxy.local/", INTERVAL="60", MQTT_TOPIC_PREFIX="/weather/",
               MQTT_USER="u", MQTT_PASSWORD="p", REFRESH_TOKEN="seed", MQTT_RETAIN="true", MQTT_QOS="1")

    s = load_settings([], env)

    assert s.base_url == "https://proxy.local"
    assert s.interval == 60
    assert s.topic_prefix == "weather"
    assert (s.mqtt_user, s.mqtt_password) == ("u", "p")
    assert s.refresh_token == "seed"
    assert s.mqtt_retain
    assert s.mqtt_qos == 1


def test_command_line_beats_environment():
    s = load_settings(["--interval", "120", "--mqtt-host", "other"], REQUIRED_ENV)

    assert s.interval == 120
    assert s.mqtt_host == "other"


@pytest.mark.parametrize("missing", ["CLIENT_ID", "CLIENT_SECRET", "MQTT_HOST"])
def test_missing_required_value(missing):
    env = {k: v for k, v in REQUIRED_ENV.items() if k != missing}

    with pytest.raises(ConfigError, match=missing):
        load_settings([], env)


@pytest.mark.parametrize(
    "extra",
    [
        {"INTERVAL": "five"},
        {"INTERVAL": "0"},
        {"MQTT_PORT": "x"},
        {"MQTT_QOS": "3"},
    ],
)
def test_invalid_values(extra):
    with pytest.raises(ConfigError):
        load_settings([], dict(REQUIRED_ENV, **extra))


@pytest.fixture
def clean_env(monkeypatch):
    # setenv first so monkeypatch restores (removes) whatever the .env loader adds
    for name in ("CLIENT_ID", "CLIENT_SECRET", "MQTT_HOST", "INTERVAL"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    return monkeypatch


def test_dotenv_file_in_working_directory_supplies_settings(tmp_path, clean_env):
    (tmp_path / ".env").write_text("CLIENT_ID=from-dotenv\nCLIENT_SECRET=s3cret\nMQTT_HOST=broker\nINTERVAL=90\n",
                                   encoding="utf-8")
    clean_env.chdir(tmp_path)

    s = load_settings([])

    assert s.client_id == "from-dotenv"
    assert s.mqtt_host == "broker"
    assert s.interval == 90


def test_environment_wins_over_dotenv(tmp_path, clean_env):
    dotenv = tmp_path / "bridge.env"
    dotenv.write_text("CLIENT_ID=from-dotenv\n", encoding="utf-8")
    clean_env.setenv("CLIENT_ID", "from-env")

    env = load_env(str(dotenv))

    assert env["CLIENT_ID"] == "from-env"


def test_missing_dotenv_is_fine(tmp_path, clean_env):
    clean_env.chdir(tmp_path)

    with pytest.raises(ConfigError, match="CLIENT_ID"):
        load_settings([])
