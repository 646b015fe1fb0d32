#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import sys
from typing import List, Mapping, Optional

import requests

from .auth import TokenRefresher
from .bridge import EXIT_FAILURE, Bridge
from .client import StationClient
from .config import Settings, build_parser, load_env, settings_from_args
from .context import BridgeContext
from .credentials import Credential, CredentialStore, short_token
from .errors import ConfigError, CredentialMissingError, MqttConnectError
from .logs import resolve_tz, setup_logger
from .publisher import MqttPublisher


def load_credential(store: CredentialStore, settings: Settings, logger) -> Credential:
    cred = store.load()
    if cred is not None:
        logger.info("Using stored %s", store.path)
        logger.debug("access token  : %s", short_token(cred.access_token))
        logger.debug("refresh token : %s", short_token(cred.refresh_token))
        return cred

    if settings.refresh_token:
        # expired on purpose: the first cycle exchanges it and writes the token file
        logger.info("No usable %s, starting from the configured refresh token", store.path)
        return Credential(access_token="", refresh_token=settings.refresh_token, expires_at=0.0)

    raise CredentialMissingError(f"No {store.path} found. Please create one.")


def main(argv: Optional[List[str]] = None, env: Optional[Mapping[str, str]] = None) -> int:
    args = build_parser(load_env() if env is None else env).parse_args(argv)
    logger = setup_logger(args.log_level, resolve_tz(args.tz))

    try:
        settings = settings_from_args(args)
    except ConfigError as ex:
        logger.error("%s. Exiting...", ex)
        return EXIT_FAILURE

    store = CredentialStore(settings.token_file, logger=logger)
    try:
        ctx = BridgeContext(credential=load_credential(store, settings, logger))
    except CredentialMissingError as ex:
        logger.error("%s", ex)
        return EXIT_FAILURE

    session = requests.Session()
    refresher = TokenRefresher(
        session=session,
        base_url=settings.base_url,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        store=store,
        margin_s=settings.token_margin,
        timeout_s=settings.timeout,
        logger=logger,
    )
    station = StationClient(session=session, base_url=settings.base_url, timeout_s=settings.timeout, logger=logger)

    publisher = MqttPublisher(
        host=settings.mqtt_host,
        port=settings.mqtt_port,
        user=settings.mqtt_user,
        password=settings.mqtt_password,
        client_id=settings.mqtt_client_id,
        keepalive=settings.mqtt_keepalive,
        base_topic=settings.topic_prefix,
        qos=settings.mqtt_qos,
        retain=settings.mqtt_retain,
        logger=logger,
    )
    try:
        publisher.connect()
    except MqttConnectError as ex:
        logger.error("%s", ex)
        return EXIT_FAILURE

    bridge = Bridge(
        ctx=ctx,
        refresher=refresher,
        station=station,
        publisher=publisher,
        interval_s=settings.interval,
        topic_prefix=settings.topic_prefix,
        logger=logger,
    )

    try:
        return bridge.run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down.")
        return 0
    finally:
        publisher.close()
        session.close()


if __name__ == "__main__":
    sys.exit(main())
