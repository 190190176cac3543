"""Minimal HTTP JSON helpers for the remote attempt service."""

from __future__ import annotations

import json
from http.client import HTTPException
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .errors import RemoteServiceError


def bearer_headers(token: str | None) -> dict[str, str]:
    """Return the authorization header for a bearer token, if any."""
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def post_json(
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str],
    timeout_sec: float = 15.0,
    operation: str = "request",
) -> Any:
    """POST a JSON payload and decode the JSON response."""
    body = json.dumps(payload).encode("utf-8")
    request = Request(url=url, data=body, method="POST")
    request.add_header("Content-Type", "application/json")
    request.add_header("Accept", "application/json")
    for key, value in headers.items():
        request.add_header(key, value)

    try:
        with urlopen(request, timeout=timeout_sec) as response:
            raw = response.read().decode("utf-8")
    except HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")
        raise RemoteServiceError(operation, f"HTTP {exc.code} from {url}: {detail}", status=exc.code) from exc
    except URLError as exc:
        raise RemoteServiceError(operation, f"network error calling {url}: {exc.reason}") from exc
    except TimeoutError as exc:
        raise RemoteServiceError(operation, f"timed out calling {url}") from exc
    except (OSError, HTTPException) as exc:
        raise RemoteServiceError(operation, f"connection failed calling {url}: {exc!r}") from exc
    except UnicodeDecodeError as exc:
        raise RemoteServiceError(operation, f"response from {url} is not UTF-8") from exc

    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RemoteServiceError(operation, f"invalid JSON from {url}") from exc
