#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import time
from typing import Iterable, Optional, Tuple

import paho.mqtt.client as mqtt

from . import LOGGER_NAME
from .errors import MqttConnectError

CONNECT_TIMEOUT_S = 5


class MqttPublisher:
    """
    Long-lived MQTT connection with a retained availability topic.

    paho's network loop runs in its own thread; `connected` mirrors the
    last connect/disconnect callback.
    """

    def __init__(
        self,
        host: str,
        port: int = 1883,
        user: str = "",
        password: str = "",
        client_id: str = "netatmobridge",
        keepalive: int = 30,
        base_topic: str = "netatmo",
        qos: int = 0,
        retain: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.keepalive = keepalive
        self.qos = qos
        self.retain = retain
        self.log = logger or logging.getLogger(LOGGER_NAME)

        self._connected = False
        self._closed = False
        self._ever_connected = False
        self.refused_rc: Optional[int] = None
        self.reconnects = 0

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION1, client_id=client_id)

        if user:
            self.client.username_pw_set(user, password=password)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        base = (base_topic or "").strip("/")
        self.topic_status = f"{base}/bridge/status" if base else "bridge/status"
        self.client.will_set(self.topic_status, payload="offline", qos=0, retain=True)

    @property
    def connected(self) -> bool:
        return self._connected

    def _on_connect(self, client, userdata, flags, rc):
        self._connected = (rc == 0)
        if not self._connected:
            if self._ever_connected:
                # broker reachable but rejecting the client (credentials, ACL)
                self.refused_rc = rc
                self.log.error("[mqtt] reconnect refused by %s rc=%s", self.host, rc)
            else:
                self.log.warning("[mqtt] connection refused by %s rc=%s", self.host, rc)
            return

        self.refused_rc = None

        if self._ever_connected:
            self.log.info("[mqtt] reconnected to %s:%s", self.host, self.port)
        else:
            self.log.info("[mqtt] connected to %s:%s", self.host, self.port)
            self._ever_connected = True

        try:
            self.client.publish(self.topic_status, payload="online", qos=0, retain=True)
        except Exception as ex:
            self.log.warning("[mqtt] failed to publish online status: %s", ex)

    def _on_disconnect(self, client, userdata, rc):
        self._connected = False
        if rc != 0 and not self._closed:
            self.reconnects += 1
            self.log.warning("[mqtt] connection to %s lost rc=%s (count=%s)", self.host, rc, self.reconnects)
        else:
            self.log.debug("[mqtt] on_disconnect rc=%s", rc)

    def connect(self):
        self.log.info("[mqtt] connect %s:%s user=%r", self.host, self.port, self.user)
        try:
            self.client.connect(self.host, self.port, keepalive=self.keepalive)
        except OSError as ex:
            raise MqttConnectError(f"Could not connect to mqtt host {self.host}: {ex}") from ex
        self.client.loop_start()

        t0 = time.time()
        while not self._connected and (time.time() - t0) < CONNECT_TIMEOUT_S:
            time.sleep(0.05)

        if not self._connected:
            self.client.loop_stop()
            raise MqttConnectError(f"MQTT connect timeout (no CONNACK within {CONNECT_TIMEOUT_S}s)")

    def publish_pairs(self, pairs: Iterable[Tuple[str, str]]) -> int:
        """
        Publishes pairs while connected and returns how many went out.

        Pairs are dropped, not queued, while the connection is down. Raises
        MqttConnectError once the broker has refused a reconnect.
        """
        if self.refused_rc is not None:
            raise MqttConnectError(f"Connection to mqtt host {self.host} refused (rc={self.refused_rc})")

        if not self._connected:
            self.log.warning("[mqtt] not connected -> dropping this cycle's readings")
            return 0

        n = 0
        for topic, value in pairs:
            if not self._connected:
                self.log.warning("[mqtt] connection lost after %d value(s) -> dropping the rest", n)
                break
            self.log.debug("[mqtt] publish topic=%s value=%s", topic, value)
            self.client.publish(topic, payload=value.encode("utf-8"), qos=self.qos, retain=self.retain)
            n += 1
        return n

    def close(self):
        if self._closed:
            return
        self._closed = True

        try:
            if self._connected:
                info = self.client.publish(self.topic_status, payload="offline", qos=0, retain=True)
                info.wait_for_publish(timeout=2)
        except Exception as ex:
            self.log.debug("[mqtt] offline status not sent: %s", ex)

        try:
            self.client.disconnect()
        except Exception as ex:
            self.log.debug("[mqtt] disconnect failed: %s", ex)
        try:
            self.client.loop_stop()
        except Exception as ex:
            self.log.debug("[mqtt] loop_stop failed: %s", ex)
        self._connected = False
        self.log.info("[mqtt] connection to %s closed", self.host)
