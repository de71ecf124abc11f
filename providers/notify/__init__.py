# Notification senders for delete-sync summaries.
from __future__ import annotations

from typing import Any, Mapping

from ._apprise import AppriseNotifier
from ._discord import DiscordWebhookNotifier

__all__ = ["AppriseNotifier", "DiscordWebhookNotifier", "build_notifiers"]


def build_notifiers(cfg: Mapping[str, Any]) -> list[Any]:
    """Senders for every channel that has a target configured."""
    n = dict(cfg.get("notifications") or {})
    timeout = float(n.get("timeout") or 10.0)
    out: list[Any] = []
    discord = dict(n.get("discord") or {})
    url = str(discord.get("webhook_url") or "").strip()
    if url:
        out.append(DiscordWebhookNotifier(url, username=str(discord.get("username") or "Reclaimarr"), timeout=timeout))
    apprise = dict(n.get("apprise") or {})
    url = str(apprise.get("url") or "").strip()
    if url:
        out.append(AppriseNotifier(url, tags=str(apprise.get("tags") or ""), timeout=timeout))
    return out
