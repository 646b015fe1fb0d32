#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from typing import Optional


class BridgeError(Exception):
    """Base class for all bridge failures."""


class ConfigError(BridgeError):
    """A required setting is missing or invalid."""


class CredentialMissingError(BridgeError):
    """No usable credential record at startup."""


class PersistFailure(BridgeError):
    """The credential record could not be written."""


class _HttpError(BridgeError):
    def __init__(self, message: str, status_code: Optional[int] = None, provider_error: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.provider_error = provider_error

    def __str__(self) -> str:
        s = super().__str__()
        if self.status_code is not None:
            s += f" (status_code={self.status_code})"
        if self.provider_error:
            s += f" error={self.provider_error!r}"
        return s


class AuthError(_HttpError):
    """Refresh-token grant rejected, failed or malformed."""


class ApiError(_HttpError):
    """Station readings request rejected, failed or malformed."""


class MqttConnectError(BridgeError):
    """The broker could not be reached at startup."""
