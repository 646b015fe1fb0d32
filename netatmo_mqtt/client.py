#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
from typing import Any, Optional

import requests

from . import LOGGER_NAME
from .auth import provider_error_text
from .errors import ApiError
from .models import StationReading, parse_station_reading

STATIONS_PATH = "/api/getstationsdata"


def decode_station_response(r: requests.Response) -> StationReading:
    """
    Classifies a getstationsdata response.

    Only status 200 with a JSON body whose top-level `status` is "ok" and
    which carries `body.devices` counts as success; anything else is an
    ApiError with the status code and the provider's message, if any.
    """
    try:
        data: Any = r.json()
    except ValueError:
        data = None

    if r.status_code != 200:
        raise ApiError("Station data request rejected", status_code=r.status_code,
                       provider_error=provider_error_text(data))

    if not isinstance(data, dict):
        raise ApiError(f"Station data response is not a JSON object (body={r.text[:200]!r})",
                       status_code=r.status_code)

    status = data.get("status")
    if status != "ok":
        raise ApiError(f"Station data status={status!r}", status_code=r.status_code,
                       provider_error=provider_error_text(data))

    body = data.get("body")
    if not isinstance(body, dict) or not isinstance(body.get("devices"), list):
        raise ApiError("Station data response missing body.devices", status_code=r.status_code)

    return parse_station_reading(body)


class StationClient:
    def __init__(
        self,
        session: requests.Session,
        base_url: str,
        timeout_s: int = 15,
        logger: Optional[logging.Logger] = None,
    ):
        self.session = session
        self.url = base_url.rstrip("/") + STATIONS_PATH
        self.timeout_s = timeout_s
        self.log = logger or logging.getLogger(LOGGER_NAME)

    def fetch(self, access_token: str) -> StationReading:
        self.log.debug("[http] GET %s", self.url)
        try:
            r = self.session.get(
                self.url,
                params={"get_favorites": "false"},
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout_s,
            )
        except requests.RequestException as ex:
            raise ApiError(f"Station data request failed: {ex}") from ex
        self.log.debug("[http] status=%s len=%s", r.status_code, len(r.content))

        reading = decode_station_response(r)
        self.log.debug("[http] %d device(s) in station data", len(reading.devices))
        return reading
