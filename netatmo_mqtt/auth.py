#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from . import LOGGER_NAME
from .context import BridgeContext
from .credentials import Credential, CredentialStore, short_token
from .errors import AuthError

TOKEN_PATH = "/oauth2/token"
DEFAULT_SAFETY_MARGIN_S = 800


def provider_error_text(data: Any) -> str:
    """Best-effort error message from an OAuth2 error body."""
    if not isinstance(data, dict):
        return ""
    err = data.get("error")
    if isinstance(err, dict):
        return str(err.get("message") or err.get("code") or "")
    err = str(err or "")
    desc = str(data.get("error_description") or "")
    if err and desc:
        return f"{err}: {desc}"
    return err or desc


def decode_token_response(r: requests.Response) -> Dict[str, Any]:
    """
    Classifies a refresh-token grant response.

    Returns the token payload, or raises AuthError for a non-200 status,
    a non-JSON body or a payload without both tokens and a positive TTL.
    """
    try:
        data = r.json()
    except ValueError:
        data = None

    if r.status_code != 200:
        raise AuthError("Token refresh rejected", status_code=r.status_code,
                        provider_error=provider_error_text(data))

    if not isinstance(data, dict):
        raise AuthError(f"Token response is not a JSON object (body={r.text[:200]!r})",
                        status_code=r.status_code)

    access_token = data.get("access_token")
    refresh_token = data.get("refresh_token")
    try:
        expires_in = int(data.get("expires_in"))
    except (TypeError, ValueError):
        expires_in = 0

    if not access_token or not refresh_token or expires_in <= 0:
        raise AuthError("Token response missing access_token/refresh_token/expires_in",
                        status_code=r.status_code, provider_error=provider_error_text(data))

    return data


def local_ttl(expires_in: int, margin_s: int) -> float:
    ttl = expires_in - margin_s
    if ttl <= 0:
        # margin larger than the provider TTL: refresh at half-life instead
        ttl = expires_in / 2.0
    return float(ttl)


class TokenRefresher:
    def __init__(
        self,
        session: requests.Session,
        base_url: str,
        client_id: str,
        client_secret: str,
        store: CredentialStore,
        margin_s: int = DEFAULT_SAFETY_MARGIN_S,
        timeout_s: int = 15,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        self.session = session
        self.token_url = base_url.rstrip("/") + TOKEN_PATH
        self.client_id = client_id
        self.client_secret = client_secret
        self.store = store
        self.margin_s = margin_s
        self.timeout_s = timeout_s
        self.clock = clock
        self.log = logger or logging.getLogger(LOGGER_NAME)

    def ensure_token(self, ctx: BridgeContext) -> str:
        """Returns a usable access token, refreshing it first if expired."""
        cred = ctx.credential
        if cred.is_valid(self.clock()):
            return cred.access_token

        self.log.debug("[auth] token expired (expires_at=%.0f) -> refresh", cred.expires_at)
        ctx.credential = self.refresh(cred)
        return ctx.credential.access_token

    def refresh(self, cred: Credential) -> Credential:
        form = {
            "grant_type": "refresh_token",
            "refresh_token": cred.refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }

        self.log.debug("[http] POST %s", self.token_url)
        try:
            r = self.session.post(self.token_url, data=form, timeout=self.timeout_s)
        except requests.RequestException as ex:
            raise AuthError(f"Token refresh failed: {ex}") from ex
        self.log.debug("[http] status=%s len=%s", r.status_code, len(r.content))

        data = decode_token_response(r)
        expires_in = int(data["expires_in"])
        issued = self.clock()

        new_cred = Credential(
            access_token=str(data["access_token"]),
            refresh_token=str(data["refresh_token"]),
            expires_at=issued + local_ttl(expires_in, self.margin_s),
            expires_in=expires_in,
            extra={k: v for k, v in data.items()
                   if k not in ("access_token", "refresh_token", "expires_in", "expire_in")},
        )

        self.store.save(new_cred)

        self.log.info("[auth] updated netatmo api token and saved it under %s", self.store.path)
        self.log.debug("[auth] access token  : %s", short_token(new_cred.access_token))
        self.log.debug("[auth] refresh token : %s", short_token(new_cred.refresh_token))
        self.log.debug("[auth] expires_in=%ss expires_at=%.0f", expires_in, new_cred.expires_at)
        return new_cred
