# rc_platform/reconcile/_notify.py
# notify policy -> channels, best-effort dispatch of run summaries.
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from collections.abc import Callable, Sequence
from typing import Any

from ._logging import log
from ._result import RunResult
from ._types import Notifier

__all__ = ["NOTIFY_POLICIES", "channels_for", "dispatch"]

NOTIFY_POLICIES: tuple[str, ...] = (
    "none", "all",
    "discord-only", "webhook-only", "discord-webhook", "discord-message", "discord-both",
    "dm-only", "apprise-only",
    # legacy values still found in older configs
    "webhook", "message", "both",
)

_WEBHOOK = frozenset({"all", "discord-only", "webhook-only", "discord-webhook", "discord-both", "webhook", "both"})
_DM = frozenset({"all", "discord-only", "dm-only", "discord-message", "discord-both", "message", "both"})
_APPRISE = frozenset({"all", "apprise-only"})


def channels_for(policy: str) -> set[str]:
    p = str(policy or "none").strip().lower()
    out: set[str] = set()
    if p in _WEBHOOK:
        out.add("webhook")
    if p in _DM:
        out.add("dm")
    if p in _APPRISE:
        out.add("apprise")
    return out


def _send_one(n: Notifier, payload: dict[str, Any], dry_run: bool) -> bool:
    try:
        return bool(n.send(payload, dry_run=dry_run))
    except Exception as e:
        log.error(f"Delete sync {n.channel} notification failed: {e}")
        return False


def dispatch(
    result: RunResult,
    notifiers: Sequence[Notifier],
    *,
    policy: str,
    only_on_deletion: bool,
    dry_run: bool,
    emit: Callable[..., None] | None = None,
) -> int:
    """Send the summary on every channel the policy selects. Returns messages sent; never raises."""
    p = str(policy or "none").strip().lower()
    if p == "none":
        log.info("Delete sync notifications disabled, skipping all notifications")
        return 0
    if p not in NOTIFY_POLICIES:
        log.warn(f"Unknown notify policy {p!r}; no notification sent")
        return 0

    payload = result.to_dict()
    if only_on_deletion and payload["total"]["deleted"] == 0:
        log.info("Delete sync completed with no deletions, skipping notification as configured")
        return 0

    wanted = channels_for(p)
    targets = [n for n in notifiers if getattr(n, "channel", None) in wanted]
    for ch in sorted(wanted - {getattr(n, "channel", None) for n in targets}):
        log.debug(f"No sender configured for {ch} notifications")
    if not targets:
        return 0

    with ThreadPoolExecutor(max_workers=len(targets)) as pool:
        outcomes = list(pool.map(lambda n: _send_one(n, payload, dry_run), targets))

    sent = sum(1 for ok in outcomes if ok)
    if emit:
        emit("notify:sent" if sent else "notify:failed", sent=sent, attempted=len(targets))
    log.info(f"Delete sync notification attempt complete: {sent} messages sent successfully")
    return sent
