# /providers/notify/_discord.py
# Reclaimarr - run summaries as a Discord webhook embed
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

import requests

from _logging import log as _root_log
from .._mod_common import HttpError, build_session, request_with_retries
from ._summary import description_for, item_lines, summary_line, title_for

__all__ = ["DiscordWebhookNotifier"]

log = _root_log.child("NOTIFY")

COLOR_OK = 0x2ECC71
COLOR_DRY = 0x3498DB
COLOR_ABORT = 0xE74C3C


@dataclass
class DiscordWebhookNotifier:
    webhook_url: str
    username: str = "Reclaimarr"
    timeout: float = 10.0
    max_retries: int = 3
    session: requests.Session = field(default_factory=build_session, repr=False)

    channel: str = field(init=False, default="webhook")

    def build_payload(self, result: Mapping[str, Any], dry_run: bool) -> dict[str, Any]:
        if result.get("safetyTriggered"):
            color = COLOR_ABORT
        else:
            color = COLOR_DRY if dry_run else COLOR_OK
        fields: list[dict[str, Any]] = [{"name": "Summary", "value": summary_line(result), "inline": False}]
        if result.get("safetyMessage"):
            fields.append({"name": "Safety Reason", "value": str(result["safetyMessage"])[:1024], "inline": False})
        for label, key in (("Movies", "movies"), ("Shows", "shows")):
            lines = item_lines(result.get(key))
            if lines:
                fields.append({"name": label, "value": "\n".join(lines)[:1024], "inline": False})
        return {
            "username": self.username,
            "embeds": [{
                "title": title_for(result, dry_run),
                "description": description_for(result, dry_run),
                "color": color,
                "fields": fields,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }],
        }

    def send(self, result: Mapping[str, Any], *, dry_run: bool) -> bool:
        if not self.webhook_url:
            return False
        try:
            resp = request_with_retries(
                self.session,
                "POST",
                self.webhook_url,
                json=self.build_payload(result, dry_run),
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        except HttpError as e:
            log.error(f"Discord webhook unreachable: {e}")
            return False
        if not resp.ok:
            log.error(f"Discord webhook rejected summary: HTTP {resp.status_code}")
            return False
        log.debug("Discord webhook summary sent")
        return True
