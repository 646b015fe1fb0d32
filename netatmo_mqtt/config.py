#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import argparse
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError

DEFAULT_BASE_URL = "https://api.netatmo.com"

REQUIRED = (
    ("client_id", "CLIENT_ID"),
    ("client_secret", "CLIENT_SECRET"),
    ("mqtt_host", "MQTT_HOST"),
)


@dataclass
class Settings:
    client_id: str
    client_secret: str
    mqtt_host: str
    refresh_token: str = ""
    base_url: str = DEFAULT_BASE_URL
    interval: int = 300
    mqtt_port: int = 1883
    mqtt_user: str = ""
    mqtt_password: str = ""
    mqtt_client_id: str = "netatmobridge"
    mqtt_keepalive: int = 30
    mqtt_qos: int = 0
    mqtt_retain: bool = False
    topic_prefix: str = "netatmo"
    token_file: str = "token.json"
    timeout: int = 15
    token_margin: int = 800
    log_level: str = "INFO"
    tz: str = ""


def _env_flag(s: Optional[str]) -> bool:
    return (s or "").strip().lower() in ("1", "true", "yes", "on")


def build_parser(env: Mapping[str, str]) -> argparse.ArgumentParser:
    """
    Every option defaults to its environment variable, so the bridge runs
    from env vars alone (container) or from the command line.
    """
    p = argparse.ArgumentParser(
        description="Netatmo weather station -> MQTT bridge with automatic OAuth2 token refresh."
    )
    e = env.get

    # Netatmo app credentials
    p.add_argument("--client-id", default=e("CLIENT_ID"), help="Netatmo app client id (env CLIENT_ID)")
    p.add_argument("--client-secret", default=e("CLIENT_SECRET"), help="Netatmo app client secret (env CLIENT_SECRET)")
    p.add_argument("--refresh-token", default=e("REFRESH_TOKEN", ""),
                   help="Initial refresh token, used when the token file does not exist yet (env REFRESH_TOKEN)")
    p.add_argument("--token-file", default=e("TOKEN_FILE", "token.json"), help="Token record path (default token.json)")
    p.add_argument("--token-margin", default=e("TOKEN_SAFETY_MARGIN", "800"),
                   help="Refresh this many seconds before the provider expiry (default 800)")

    # API
    p.add_argument("--base-url", default=e("BASEURL", DEFAULT_BASE_URL), help="API base URL (env BASEURL)")
    p.add_argument("--interval", default=e("INTERVAL", "300"), help="Poll interval seconds (default 300)")
    p.add_argument("--timeout", default=e("HTTP_TIMEOUT", "15"), help="HTTP timeout seconds (default 15)")

    # MQTT
    p.add_argument("--mqtt-host", default=e("MQTT_HOST"), help="MQTT host (env MQTT_HOST)")
    p.add_argument("--mqtt-port", default=e("MQTT_PORT", "1883"), help="MQTT port (default 1883)")
    p.add_argument("--mqtt-user", default=e("MQTT_USER", ""), help="MQTT username")
    p.add_argument("--mqtt-password", default=e("MQTT_PASSWORD", ""), help="MQTT password")
    p.add_argument("--mqtt-client-id", default=e("MQTT_CLIENT_ID", "netatmobridge"), help="MQTT client id")
    p.add_argument("--mqtt-keepalive", default=e("MQTT_KEEPALIVE", "30"), help="MQTT keepalive seconds (default 30)")
    p.add_argument("--mqtt-qos", default=e("MQTT_QOS", "0"), help="MQTT QoS (0/1/2)")
    p.add_argument("--mqtt-retain", action="store_true", default=_env_flag(e("MQTT_RETAIN")), help="MQTT retain flag")
    p.add_argument("--topic-prefix", default=e("MQTT_TOPIC_PREFIX", "netatmo"), help="Topic prefix (default netatmo)")

    # logging
    p.add_argument("--log-level", default=e("LOG_LEVEL", "INFO"), help="Log level: DEBUG, INFO, WARNING, ERROR (default INFO)")
    p.add_argument("--tz", default=e("TZ_NAME", ""), help="Timezone for log timestamps (default local time)")

    return p


def _int_option(args: argparse.Namespace, name: str, minimum: int) -> int:
    raw = getattr(args, name)
    try:
        v = int(str(raw).strip())
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid value for --{name.replace('_', '-')}: {raw!r}")
    if v < minimum:
        raise ConfigError(f"--{name.replace('_', '-')} must be >= {minimum}, got {v}")
    return v


def settings_from_args(args: argparse.Namespace) -> Settings:
    missing = [env for attr, env in REQUIRED if not (getattr(args, attr) or "").strip()]
    if missing:
        raise ConfigError(f"Missing required variable(s): {', '.join(missing)}")

    qos = _int_option(args, "mqtt_qos", 0)
    if qos > 2:
        raise ConfigError(f"--mqtt-qos must be 0, 1 or 2, got {qos}")

    return Settings(
        client_id=args.client_id.strip(),
        client_secret=args.client_secret.strip(),
        mqtt_host=args.mqtt_host.strip(),
        refresh_token=(args.refresh_token or "").strip(),
        base_url=(args.base_url or DEFAULT_BASE_URL).rstrip("/"),
        interval=_int_option(args, "interval", 1),
        mqtt_port=_int_option(args, "mqtt_port", 1),
        mqtt_user=args.mqtt_user or "",
        mqtt_password=args.mqtt_password or "",
        mqtt_client_id=args.mqtt_client_id or "netatmobridge",
        mqtt_keepalive=_int_option(args, "mqtt_keepalive", 1),
        mqtt_qos=qos,
        mqtt_retain=bool(args.mqtt_retain),
        topic_prefix=(args.topic_prefix or "").strip("/"),
        token_file=args.token_file or "token.json",
        timeout=_int_option(args, "timeout", 1),
        token_margin=_int_option(args, "token_margin", 0),
        log_level=args.log_level or "INFO",
        tz=args.tz or "",
    )


def load_env(dotenv_path: Optional[str] = None) -> Mapping[str, str]:
    """
    Merges a `.env` file (default: found from the working directory) into the
    process environment. Variables already set in the environment win.
    """
    load_dotenv(dotenv_path or find_dotenv(usecwd=True))
    return os.environ


def load_settings(argv: Optional[List[str]] = None, env: Optional[Mapping[str, str]] = None) -> Settings:
    args = build_parser(load_env() if env is None else env).parse_args(argv)
    return settings_from_args(args)
