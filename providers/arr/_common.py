# /providers/arr/_common.py
# Reclaimarr - shared client base for Sonarr/Radarr (v3 API)
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import requests

from _logging import log as _root_log
from .._mod_common import HttpError, build_session, request_with_retries, safe_json

__all__ = ["ArrError", "ArrAuthError", "ArrConfig", "ArrClientBase"]

log = _root_log.child("ARR")


class ArrError(RuntimeError):
    pass


class ArrAuthError(ArrError):
    pass


@dataclass
class ArrConfig:
    instance_id: str
    base_url: str
    api_key: str
    name: str = ""
    timeout: float = 15.0
    max_retries: int = 3

    @classmethod
    def from_block(cls, instance_id: str, blk: Mapping[str, Any], default_name: str) -> ArrConfig:
        name = str(blk.get("name") or default_name)
        if str(instance_id) != "default" and not blk.get("name"):
            name = f"{default_name} ({instance_id})"
        return cls(
            instance_id=str(instance_id),
            base_url=str(blk.get("base_url") or "").strip().rstrip("/"),
            api_key=str(blk.get("api_key") or "").strip(),
            name=name,
            timeout=float(blk.get("timeout") or 15.0),
            max_retries=int(blk.get("max_retries") or 3),
        )


class ArrClientBase:
    """Thin /api/v3 client; subclasses set `kind` and `resource`."""

    kind: str = ""
    resource: str = ""

    def __init__(self, cfg: ArrConfig, session: requests.Session | None = None):
        self.cfg = cfg
        self.session = session or build_session({"X-Api-Key": cfg.api_key})

    @property
    def instance_id(self) -> str:
        return self.cfg.instance_id

    def _url(self, path: str) -> str:
        return f"{self.cfg.base_url}/api/v3/{path.lstrip('/')}"

    def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = request_with_retries(
                self.session,
                method,
                self._url(path),
                timeout=self.cfg.timeout,
                max_retries=self.cfg.max_retries,
                **kwargs,
            )
        except HttpError as e:
            raise ArrError(f"{self.cfg.name} unreachable: {e}") from e
        if resp.status_code in (401, 403):
            raise ArrAuthError(f"{self.cfg.name} rejected the API key ({resp.status_code})")
        if not resp.ok:
            raise ArrError(f"{self.cfg.name} {method} {path} failed: HTTP {resp.status_code}")
        return safe_json(resp)

    def get(self, path: str, **params: Any) -> Any:
        return self._call("GET", path, params=params or None)

    def delete_path(self, path: str, **params: Any) -> None:
        self._call("DELETE", path, params=params or None)

    # Tags
    def get_tags(self) -> list[dict[str, Any]]:
        data = self.get("tag")
        return [dict(t) for t in (data if isinstance(data, list) else []) if isinstance(t, Mapping)]

    def bulk_get_tags(self) -> dict[int, list[int]]:
        data = self.get(self.resource)
        out: dict[int, list[int]] = {}
        for row in data if isinstance(data, list) else []:
            try:
                out[int(row["id"])] = [int(t) for t in (row.get("tags") or [])]
            except (KeyError, TypeError, ValueError):
                continue
        return out
