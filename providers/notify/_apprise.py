# /providers/notify/_apprise.py
# Reclaimarr - run summaries through an Apprise API endpoint
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import requests

from _logging import log as _root_log
from .._mod_common import HttpError, build_session, request_with_retries
from ._summary import render_text, title_for

__all__ = ["AppriseNotifier"]

log = _root_log.child("NOTIFY")


@dataclass
class AppriseNotifier:
    """POSTs {title, body[, tag]} to an Apprise API `/notify/<key>` url."""

    url: str
    tags: str = ""
    timeout: float = 10.0
    max_retries: int = 3
    session: requests.Session = field(default_factory=build_session, repr=False)

    channel: str = field(init=False, default="apprise")

    def build_payload(self, result: Mapping[str, Any], dry_run: bool) -> dict[str, Any]:
        body: dict[str, Any] = {
            "title": title_for(result, dry_run),
            "body": render_text(result, dry_run),
            "type": "warning" if result.get("safetyTriggered") else "info",
        }
        if self.tags.strip():
            body["tag"] = self.tags.strip()
        return body

    def send(self, result: Mapping[str, Any], *, dry_run: bool) -> bool:
        if not self.url:
            return False
        try:
            resp = request_with_retries(
                self.session,
                "POST",
                self.url,
                json=self.build_payload(result, dry_run),
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        except HttpError as e:
            log.error(f"Apprise unreachable: {e}")
            return False
        if not resp.ok:
            log.error(f"Apprise rejected summary: HTTP {resp.status_code}")
            return False
        return True
