"""Lightweight HTTP client util with retry.

Uses stdlib urllib; the only outbound JSON GET is the reference token quote.
Every attempt is bounded by ``timeout``.
"""

from __future__ import annotations

import http.client
import json
import time
import urllib.parse
import urllib.request
import urllib.error
from typing import Any, Dict, Mapping, Optional


class HttpError(Exception):
    pass


def build_url(base: str, params: Optional[Mapping[str, Any]] = None) -> str:
    if not params:
        return base
    return f"{base}?{urllib.parse.urlencode(params)}"


def get_json(
    url: str,
    *,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = 5.0,
    retries: int = 2,
    backoff: float = 0.5,
) -> Dict[str, Any]:
    last_err: Optional[Exception] = None
    request_headers = {"Accept": "application/json", **(headers or {})}
    for attempt in range(retries + 1):
        try:
            req = urllib.request.Request(url, headers=request_headers)
            with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec B310
                if resp.status >= 400:
                    raise HttpError(f"HTTP {resp.status} for {url}")
                data = resp.read()
                return json.loads(data.decode("utf-8"))
        except (
            urllib.error.URLError,
            http.client.HTTPException,
            OSError,
            HttpError,
            ValueError,
        ) as e:  # ValueError for JSON decode, OSError covers timeouts and resets
            last_err = e
            if attempt == retries:
                break
            time.sleep(backoff * (2**attempt))
    raise HttpError(f"Failed to fetch JSON from {url}: {last_err}")
