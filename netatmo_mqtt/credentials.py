#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from . import LOGGER_NAME
from .errors import PersistFailure


@dataclass
class Credential:
    access_token: str
    refresh_token: str
    expires_at: float = 0.0   # unix seconds, safety margin already applied
    expires_in: int = 0       # provider TTL seconds
    extra: Dict[str, Any] = field(default_factory=dict)

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at

    def to_record(self) -> Dict[str, Any]:
        rec = dict(self.extra)
        rec.update({
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_in": self.expires_in,
            "expires_at": self.expires_at,
        })
        return rec

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> Optional["Credential"]:
        refresh_token = str(rec.get("refresh_token") or "")
        if not refresh_token:
            return None
        extra = {k: v for k, v in rec.items()
                 if k not in ("access_token", "refresh_token", "expires_in", "expires_at")}
        try:
            expires_at = float(rec.get("expires_at") or 0.0)
            expires_in = int(rec.get("expires_in") or 0)
        except (TypeError, ValueError):
            expires_at, expires_in = 0.0, 0
        return cls(
            access_token=str(rec.get("access_token") or ""),
            refresh_token=refresh_token,
            expires_at=expires_at,
            expires_in=expires_in,
            extra=extra,
        )


def short_token(token: str) -> str:
    return (token[:18] + "…") if token else ""


class CredentialStore:
    """
    JSON file holding the OAuth2 token pair.

    A record without `expires_at` (e.g. written by hand from the provider's
    token response) loads as expired, so the first cycle refreshes it.
    """

    def __init__(self, path: str, logger: Optional[logging.Logger] = None):
        self.path = path
        self.log = logger or logging.getLogger(LOGGER_NAME)

    def load(self) -> Optional[Credential]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                content = fh.read()
        except FileNotFoundError:
            self.log.debug("[store] %s not found", self.path)
            return None
        except OSError as ex:
            self.log.warning("[store] cannot read %s: %s", self.path, ex)
            return None

        if not content.strip():
            self.log.warning("[store] %s is empty", self.path)
            return None

        try:
            rec = json.loads(content)
        except ValueError as ex:
            self.log.warning("[store] %s is not valid JSON: %s", self.path, ex)
            return None

        if not isinstance(rec, dict):
            self.log.warning("[store] %s does not contain a JSON object", self.path)
            return None

        cred = Credential.from_record(rec)
        if cred is None:
            self.log.warning("[store] %s has no refresh_token", self.path)
        return cred

    def save(self, cred: Credential) -> None:
        # write to a sibling temp file and rename over the target so a reader
        # never sees a half-written record
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".token-", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(cred.to_record(), fh, indent=2, ensure_ascii=False)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as ex:
            raise PersistFailure(f"Could not write credential record {self.path}: {ex}") from ex
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass

        self.log.debug("[store] saved %s (expires_at=%.0f)", self.path, cred.expires_at)
