"""Netatmo weather station -> MQTT bridge."""

__version__ = "1.0.0"

LOGGER_NAME = "netatmo_mqtt"
