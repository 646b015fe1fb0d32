#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from dataclasses import dataclass

from .credentials import Credential


@dataclass
class BridgeContext:
    """Mutable bridge state handed through every pipeline stage."""

    credential: Credential
    has_error: bool = False
    last_error: str = ""
    cycles: int = 0

    def flag_error(self, ex: Exception) -> None:
        self.has_error = True
        self.last_error = str(ex)[:300]
