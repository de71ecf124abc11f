# rc_platform/config_base.py
# Reclaimarr configuration: defaults, load/save and the delete-sync policy block.
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

import copy
import json
import os
import secrets
import threading
import time
from pathlib import Path
from typing import Any, Dict

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config and state files.

    Priority:
      1) $CONFIG_BASE if set
      2) /config (when running in a container that mounts /config)
      3) Project root (one level up from this file)
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]


# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Library managers ----------------------------------------------------
    "sonarr": {
        "name": "Sonarr",                               # Label used in logs and audit lists
        "base_url": "",                                 # http(s)://host:8989 ; empty = instance disabled
        "api_key": "",                                  # Settings > General > API Key
        "timeout": 15.0,                                # HTTP timeout (seconds)
        "max_retries": 3,                               # Retry budget for 429/5xx
        "instances": {},                                # Extra instances: {"4k": {base_url, api_key, ...}}
    },
    "radarr": {
        "name": "Radarr",
        "base_url": "",                                 # http(s)://host:7878
        "api_key": "",
        "timeout": 15.0,
        "max_retries": 3,
        "instances": {},
    },

    # --- Media server (protection playlists) ---------------------------------
    "plex": {
        "server_url": "",                               # http(s)://host:32400 ; required when protection is on
        "account_token": "",                            # Owner token; shared users get their own server token
        "timeout": 10.0,
        "verify_ssl": True,
    },

    # --- Delete sync ---------------------------------------------------------
    "delete_sync": {
        "deletion_mode": "watchlist",                   # "watchlist" or "tag-based"
        "delete_movie": False,                          # Remove movies no longer wanted
        "delete_ended_show": False,                     # Remove shows whose series has ended
        "delete_continuing_show": False,                # Remove shows still airing
        "delete_files": True,                           # Also delete files on disk
        "max_deletion_prevention": 10,                  # Abort when more than N% of the library would go
        "respect_user_sync_setting": True,              # Only users with sync enabled feed the inclusion set
        "tracked_only": False,                          # Only remove items this app added (tracked GUIDs)
        "cleanup_tracked": False,                       # After live deletes, drop their GUIDs from the tracked list
        "removal_tag_prefix": "reclaimarr:removed",     # Tag-based mode: prefix of the removal tag
        "required_tag_regex": "",                       # Optional: item must also carry a tag matching this
        "protection_enabled": False,                    # Honor per-user protection playlists
        "protection_playlist": "Do Not Delete",         # Playlist title looked up/created for every user
        "notify": "none",                               # none|all|discord-only|webhook-only|dm-only|apprise-only|...
        "notify_only_on_deletion": False,               # Skip the summary when nothing was deleted
    },

    # --- Notifications -------------------------------------------------------
    "notifications": {
        "discord": {
            "webhook_url": "",                          # Channel webhook for run summaries
            "username": "Reclaimarr",
        },
        "apprise": {
            "url": "",                                  # Apprise API endpoint, e.g. http://apprise:8000/notify/reclaimarr
            "tags": "",                                 # Optional tag filter sent along
        },
        "timeout": 10.0,
    },

    # --- Runtime -------------------------------------------------------------
    "runtime": {
        "debug": False,                                 # Verbose DEBUG lines
        "watchlist_refresh_retries": 2,                 # Extra attempts after the first refresh failure
        "watchlist_refresh_backoff": 1.0,               # Seconds; doubles per attempt
        "inventory_workers": 8,                         # Parallel instance fetches
        "detail_workers": 10,                           # Parallel item detail lookups (tag pre-check)
    },
}


# ------------------------------------------------------------
# Helpers: paths, IO, merging
# ------------------------------------------------------------
def _cfg_file() -> Path:
    return CONFIG_BASE() / "config.json"


def config_path() -> Path:
    return _cfg_file()


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(p: Path, data: Dict[str, Any]) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
    tmp = p.with_suffix(suffix)

    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    tmp.replace(p)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)  # type: ignore[assignment]
        else:
            out[k] = v
    return out


_MODE_ALIASES = {
    "watchlist": "watchlist",
    "tag-based": "tag-based",
    "tag_based": "tag-based",
    "tags": "tag-based",
}


def _normalize_delete_sync(block: Dict[str, Any]) -> Dict[str, Any]:
    b = dict(block or {})
    mode = str(b.get("deletion_mode") or "watchlist").strip().lower()
    # unknown values are left for the policy loader to reject
    b["deletion_mode"] = _MODE_ALIASES.get(mode, mode)
    b["notify"] = str(b.get("notify") or "none").strip().lower()
    b["protection_playlist"] = str(b.get("protection_playlist") or "").strip() or "Do Not Delete"
    return b


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config() -> Dict[str, Any]:
    """
    Read config.json merged over DEFAULT_CFG.
    """
    p = _cfg_file()
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            user_cfg = _read_json(p)
        except Exception:
            user_cfg = {}

    cfg = _deep_merge(DEFAULT_CFG, user_cfg)
    cfg["delete_sync"] = _normalize_delete_sync(cfg.get("delete_sync") or {})
    return cfg


def save_config(cfg: Dict[str, Any]) -> None:
    """
    Write config.json atomically.
    """
    data = dict(cfg or {})
    if isinstance(data.get("delete_sync"), dict):
        data["delete_sync"] = _normalize_delete_sync(data["delete_sync"])
    _write_json_atomic(_cfg_file(), data)
