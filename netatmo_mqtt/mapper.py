#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Flattens a StationReading into (topic, value) pairs:

    <prefix>/<device>/<field>
    <prefix>/<device>/modules/<module>/<field>
"""

import hashlib
import re
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from .models import Device, Module, StationReading

DEVICE_METRICS = ("Temperature", "CO2", "Humidity", "Noise", "Pressure")
MODULE_METRICS = ("Temperature", "Humidity")

# ':' from MAC addresses, plus everything that is not allowed inside one MQTT topic level
_STRIP_RE = re.compile(r"[:/+#\s]")

Pair = Tuple[str, str]


def sha256_hex(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def sanitize_id(raw: str) -> str:
    return _STRIP_RE.sub("", raw or "")


def format_value(v: Any) -> Optional[str]:
    """Canonical text for a metric value; None means "absent"."""
    if v is None:
        return None
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, int):
        return str(v)
    if isinstance(v, float):
        if v != v or v in (float("inf"), float("-inf")):
            return None
        if v.is_integer():
            return str(int(v))
        return repr(v)
    return str(v)


class IdScope:
    """
    Hands out topic-safe ids that stay unique within one topic level.

    Two raw ids that sanitize to the same text (e.g. "AA:BB:CC" and "AAB:BCC")
    would otherwise share a topic; the later one gets a hash suffix.
    """

    def __init__(self):
        self._by_raw: Dict[str, str] = {}
        self._used: Set[str] = set()

    def resolve(self, raw: str) -> str:
        if raw in self._by_raw:
            return self._by_raw[raw]

        clean = sanitize_id(raw)
        candidate = clean
        n = 8
        while candidate in self._used or not candidate:
            candidate = f"{clean}-{sha256_hex(raw)[:n]}" if clean else sha256_hex(raw)[:n]
            n += 4

        self._by_raw[raw] = candidate
        self._used.add(candidate)
        return candidate


def _metric_pairs(base: str, dashboard: Dict[str, Any], names: Tuple[str, ...]) -> Iterator[Pair]:
    for name in names:
        value = format_value(dashboard.get(name))
        if value is not None:
            yield f"{base}{name}", value


def _module_pairs(device_base: str, module: Module, scope: IdScope) -> Iterator[Pair]:
    base = f"{device_base}modules/{scope.resolve(module.id)}/"
    yield f"{base}type", module.type

    battery = format_value(module.battery_percent)
    if battery is not None:
        yield f"{base}battery_percent", battery

    if module.dashboard is not None:
        yield from _metric_pairs(base, module.dashboard, MODULE_METRICS)


def _device_pairs(prefix: str, device: Device, scope: IdScope) -> Iterator[Pair]:
    dev_id = scope.resolve(device.id)
    base = f"{prefix}/{dev_id}/" if prefix else f"{dev_id}/"
    yield f"{base}type", device.type
    yield from _metric_pairs(base, device.dashboard, DEVICE_METRICS)

    module_scope = IdScope()
    for module in device.modules:
        yield from _module_pairs(base, module, module_scope)


def map_reading(reading: StationReading, prefix: str = "netatmo") -> List[Pair]:
    prefix = (prefix or "").strip("/")
    device_scope = IdScope()
    pairs: List[Pair] = []
    seen: Set[str] = set()
    for device in reading.devices:
        for topic, value in _device_pairs(prefix, device, device_scope):
            # a device listed twice keeps its first values
            if topic in seen:
                continue
            seen.add(topic)
            pairs.append((topic, value))
    return pairs
