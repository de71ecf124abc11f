# rc_platform/provider_instances.py
# Multi-instance helpers for Sonarr/Radarr style config blocks.
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

_DEFAULT_INSTANCE = "default"
_INSTANCES_KEY = "instances"


def normalize_instance_id(v: Any) -> str:
    s = str(v or "").strip()
    return _DEFAULT_INSTANCE if not s or s.lower() == _DEFAULT_INSTANCE else s


def provider_key(provider_name: str) -> str:
    return str(provider_name or "").strip().lower()


def get_provider_block(cfg: Mapping[str, Any], provider_name: str, instance_id: Any = None) -> dict[str, Any]:
    key = provider_key(provider_name)
    base = cfg.get(key) if isinstance(cfg, Mapping) else None
    base_block = dict(base or {}) if isinstance(base, Mapping) else {}

    inst = normalize_instance_id(instance_id)
    if inst == _DEFAULT_INSTANCE:
        base_block.pop(_INSTANCES_KEY, None)
        return base_block

    insts = base_block.get(_INSTANCES_KEY)
    if isinstance(insts, Mapping) and isinstance(insts.get(inst), Mapping):
        # extra instances inherit timeout/retry knobs from the default block
        inherited = {k: v for k, v in base_block.items() if k in ("timeout", "max_retries")}
        inherited.update(dict(insts.get(inst) or {}))
        return inherited

    return {}


def list_instance_ids(cfg: Mapping[str, Any], provider_name: str) -> list[str]:
    key = provider_key(provider_name)
    base = cfg.get(key) if isinstance(cfg, Mapping) else None
    insts = (base or {}).get(_INSTANCES_KEY) if isinstance(base, Mapping) else None

    out: list[str] = [_DEFAULT_INSTANCE]
    if isinstance(insts, Mapping):
        extra = [str(k) for k in insts.keys() if str(k).strip() and normalize_instance_id(k) != _DEFAULT_INSTANCE]
        out.extend(sorted(set(extra)))
    return out


def configured_instances(cfg: Mapping[str, Any], provider_name: str) -> Iterator[tuple[str, dict[str, Any]]]:
    """(instance_id, block) for every instance that has a base_url and api_key."""
    for inst in list_instance_ids(cfg, provider_name):
        blk = get_provider_block(cfg, provider_name, inst)
        if str(blk.get("base_url") or "").strip() and str(blk.get("api_key") or "").strip():
            yield inst, blk
