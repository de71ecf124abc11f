# /rc_platform/guid_map.py
# Common GUID handling for tracked items, watchlist entries and playlists.
# - Normalize namespaced identifiers ("TMDB://123" -> "tmdb:123").
# - Parse loosely-typed GUID fields (JSON list, comma string, list, single value).
# - Build GUIDs from Sonarr/Radarr id fields and Plex <Guid> values.
# - Overlap checks used by inclusion and protection tests.
# Copyright (c) 2025-2026 Reclaimarr

from __future__ import annotations
import json
import re
from typing import Any, Iterable, Mapping, Optional, Tuple

__all__ = [
    "ID_KEYS",
    "normalize_guid", "parse_guids", "guid_set",
    "guids_from_ids", "guids_from_plex",
    "has_matching_guids", "any_guid_in",
    "extract_typed_id", "first_guid",
]

# Order matters: first GUID of an item is what audit lists report.
ID_KEYS: Tuple[str, ...] = ("imdb", "tmdb", "tvdb")

_CLEAN_SENTINELS = {"none", "null", "nan", "undefined", "unknown", "0", ""}

# Plex agent variants seen in <Guid id="..."> and legacy item.guid values
_PLEX_AGENT_PATTERNS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"com\.plexapp\.agents\.imdb://(?P<v>tt\d+)", re.I), "imdb"),
    (re.compile(r"com\.plexapp\.agents\.themoviedb://(?P<v>\d+)", re.I), "tmdb"),
    (re.compile(r"com\.plexapp\.agents\.thetvdb://(?P<v>\d+)", re.I), "tvdb"),
)

# --- tiny utils ---------------------------------------------------------------

def _norm_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _normalize_id(key: str, val: Any) -> Optional[str]:
    s = _norm_str(val)
    if not s or s.lower() in _CLEAN_SENTINELS:
        return None
    if key in ("tmdb", "tvdb"):
        digits = re.sub(r"\D+", "", s)
        return digits if digits and digits != "0" else None
    if key == "imdb":
        m = re.search(r"(tt\d+)", s.lower())
        if m:
            return m.group(1)
        digits = re.sub(r"\D+", "", s)
        return f"tt{digits}" if digits else None
    return s.lower()

# --- normalize / parse --------------------------------------------------------

def normalize_guid(guid: Any) -> str:
    """Lowercase and collapse "scheme://id" to "scheme:id". Blank input gives ""."""
    s = _norm_str(guid)
    if not s:
        return ""
    for rx, label in _PLEX_AGENT_PATTERNS:
        m = rx.search(s)
        if m:
            return f"{label}:{m.group('v').lower()}"
    s = s.lower()
    if "://" in s:
        scheme, _, rest = s.partition("://")
        s = f"{scheme}:{rest}"
    return s


def _raw_guid_values(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return []
        if s.startswith("["):
            try:
                parsed = json.loads(s)
            except ValueError:
                parsed = None
            if isinstance(parsed, list):
                return parsed
        return s.split(",") if "," in s else [s]
    if isinstance(value, Iterable):
        return list(value)
    return [value]


def parse_guids(value: Any) -> list[str]:
    """Normalized, de-duplicated (first wins) GUID list from any supported shape."""
    out: list[str] = []
    seen: set[str] = set()
    for raw in _raw_guid_values(value):
        g = normalize_guid(raw)
        if g and g not in seen:
            seen.add(g)
            out.append(g)
    return out


def guid_set(items: Iterable[Mapping[str, Any]], field: str = "guids") -> set[str]:
    out: set[str] = set()
    for it in items or ():
        if isinstance(it, Mapping):
            out.update(parse_guids(it.get(field)))
    return out

# --- builders -----------------------------------------------------------------

def guids_from_ids(ids: Mapping[str, Any], *, local: Optional[Tuple[str, Any]] = None) -> list[str]:
    """GUIDs from imdbId/tmdbId/tvdbId style fields; `local` appends e.g. ("sonarr", 12)."""
    out: list[str] = []
    for key in ID_KEYS:
        raw = ids.get(key)
        if raw is None:
            raw = ids.get(f"{key}Id")
        n = _normalize_id(key, raw)
        if n:
            out.append(f"{key}:{n}")
    if local is not None:
        name, val = local
        n = _normalize_id(name, val)
        if n:
            out.append(f"{name}:{n}")
    return parse_guids(out)


def guids_from_plex(values: Iterable[Any]) -> list[str]:
    """Plex Guid objects (or their id strings) to normalized GUIDs, plex:// dropped."""
    out: list[str] = []
    for v in values or ():
        raw = getattr(v, "id", v)
        g = normalize_guid(raw)
        if g and not g.startswith("plex:"):
            out.append(g)
    return parse_guids(out)

# --- matching -----------------------------------------------------------------

def has_matching_guids(a: Any, b: Any) -> bool:
    left = parse_guids(a)
    if not left:
        return False
    right = set(parse_guids(b))
    return any(g in right for g in left)


def any_guid_in(guids: Iterable[str], pool: set[str] | frozenset[str]) -> bool:
    if not pool:
        return False
    return any(g in pool for g in guids or ())


def extract_typed_id(guids: Any, prefix: str) -> int:
    """Numeric id for the first "<prefix>:<n>" GUID, 0 when missing or not numeric."""
    want = prefix.rstrip(":").lower() + ":"
    for g in parse_guids(guids):
        if g.startswith(want):
            raw = g[len(want):]
            if raw.startswith("tt"):
                raw = raw[2:]
            try:
                n = int(raw)
            except ValueError:
                return 0
            return n if n > 0 else 0
    return 0


def first_guid(guids: Iterable[str]) -> str:
    for g in guids or ():
        if g:
            return g
    return "unknown"
