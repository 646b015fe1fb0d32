#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import time
from typing import Callable, Optional

from . import LOGGER_NAME
from .auth import TokenRefresher
from .client import StationClient
from .context import BridgeContext
from .errors import ApiError, AuthError, MqttConnectError, PersistFailure
from .mapper import map_reading
from .publisher import MqttPublisher

EXIT_FAILURE = 1


class Bridge:
    """
    Poll loop: refresh -> fetch -> map -> publish, once per interval.

    The loop runs until a cycle fails. A failed token refresh flags the
    context and the next cycle stops the process; a failed fetch (or a
    credential write that did not make it to disk, or a broker that refuses
    the reconnect) stops it right away.
    Recovery is left to the process supervisor.
    """

    def __init__(
        self,
        ctx: BridgeContext,
        refresher: TokenRefresher,
        station: StationClient,
        publisher: MqttPublisher,
        interval_s: int = 300,
        topic_prefix: str = "netatmo",
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self.ctx = ctx
        self.refresher = refresher
        self.station = station
        self.publisher = publisher
        self.interval_s = interval_s
        self.topic_prefix = topic_prefix
        self.sleep = sleep
        self.log = logger or logging.getLogger(LOGGER_NAME)

    def stop(self) -> int:
        self.log.error("Stopping process.")
        self.publisher.close()
        return EXIT_FAILURE

    def run_cycle(self) -> bool:
        """One refresh/fetch/map/publish pass. False means stop now."""
        ctx = self.ctx
        ctx.cycles += 1

        try:
            access_token = self.refresher.ensure_token(ctx)
        except AuthError as ex:
            ctx.flag_error(ex)
            self.log.error("[auth] %s", ex)
            # keep going with the current token; the next cycle stops
            access_token = ctx.credential.access_token
        except PersistFailure as ex:
            ctx.flag_error(ex)
            self.log.error("[store] %s", ex)
            return False

        self.log.info("Getting station data")
        try:
            reading = self.station.fetch(access_token)
        except ApiError as ex:
            ctx.flag_error(ex)
            self.log.error("[http] %s", ex)
            return False

        pairs = map_reading(reading, self.topic_prefix)
        try:
            n = self.publisher.publish_pairs(pairs)
        except MqttConnectError as ex:
            ctx.flag_error(ex)
            self.log.error("[mqtt] %s", ex)
            return False
        if n:
            self.log.info("Published %d value(s) for %d device(s) via mqtt", n, len(reading.devices))
        return True

    def run(self) -> int:
        self.log.info("[loop] interval=%ss prefix=%s", self.interval_s, self.topic_prefix)
        while True:
            if self.ctx.has_error:
                return self.stop()

            if not self.run_cycle():
                return self.stop()

            # next cycle starts a full interval after this one finished
            self.sleep(self.interval_s)
