#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Module:
    id: str
    type: str
    battery_percent: Optional[Any] = None
    dashboard: Optional[Dict[str, Any]] = None   # None: module reports no metrics block


@dataclass
class Device:
    id: str
    type: str
    dashboard: Dict[str, Any] = field(default_factory=dict)
    modules: List[Module] = field(default_factory=list)


@dataclass
class StationReading:
    devices: List[Device] = field(default_factory=list)


def _parse_module(raw: Dict[str, Any]) -> Module:
    dd = raw.get("dashboard_data")
    return Module(
        id=str(raw.get("_id", "")),
        type=str(raw.get("type", "")),
        battery_percent=raw.get("battery_percent"),
        dashboard=dict(dd) if isinstance(dd, dict) else None,
    )


def _parse_device(raw: Dict[str, Any]) -> Device:
    dd = raw.get("dashboard_data")
    modules = raw.get("modules") or []
    return Device(
        id=str(raw.get("_id", "")),
        type=str(raw.get("type", "")),
        dashboard=dict(dd) if isinstance(dd, dict) else {},
        modules=[_parse_module(m) for m in modules if isinstance(m, dict)],
    )


def parse_station_reading(body: Dict[str, Any]) -> StationReading:
    """Builds a StationReading from the `body` of a getstationsdata response."""
    devices = body.get("devices") or []
    return StationReading(devices=[_parse_device(d) for d in devices if isinstance(d, dict)])
