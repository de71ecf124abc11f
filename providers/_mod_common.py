# /providers/_mod_common.py
# Reclaimarr - HTTP helpers shared by provider modules
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

import json
import time
from typing import Any, Mapping

import requests

__VERSION__ = "1.0.0"
__all__ = [
    "HttpError",
    "build_session",
    "safe_json",
    "request_with_retries",
]


class HttpError(RuntimeError):
    pass


def build_session(headers: Mapping[str, str] | None = None) -> requests.Session:
    s = requests.Session()
    s.headers.update({"Accept": "application/json", "User-Agent": "Reclaimarr/DeleteSync"})
    if headers:
        s.headers.update(dict(headers))
    return s


def safe_json(resp: requests.Response) -> Any:
    try:
        if not (resp.text or "").strip():
            return {}
        ctype = (resp.headers.get("Content-Type") or "").lower()
        if "json" in ctype:
            return resp.json()
        return json.loads(resp.text)
    except ValueError:
        return {}


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float = 15.0,
    max_retries: int = 3,
    retry_on: tuple[int, ...] = (429, 500, 502, 503, 504),
    backoff_base: float = 0.5,
    **kwargs: Any,
) -> requests.Response:
    last: Any = None
    for i in range(max(1, int(max_retries))):
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
            if resp.status_code in retry_on and i < max_retries - 1:
                wait = backoff_base * (2**i)
                ra = resp.headers.get("Retry-After") if resp.status_code == 429 else None
                if ra:
                    try:
                        wait = max(wait, float(ra))
                    except ValueError:
                        pass
                time.sleep(wait)
                last = resp
                continue
            return resp
        except requests.RequestException as e:
            last = e
            if i < max_retries - 1:
                time.sleep(backoff_base * (2**i))
            else:
                break
    if isinstance(last, requests.Response):
        return last
    raise HttpError(f"request failed after retries: {method} {url}: {last}")
