from __future__ import annotations

import json
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from . import __version__
from .cli_shared import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    OpError,
    ServerError,
    TransportError,
    ValidationError,
)
from .config import Settings

_STATUS_ERRORS: dict[int, type[OpError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    422: ValidationError,
}


def _http_request(
    *,
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes | None = None,
    timeout_seconds: int = 30,
) -> tuple[int, dict[str, str], bytes]:
    req = Request(url, data=body, method=str(method).upper())
    for k, v in headers.items():
        req.add_header(k, v)
    try:
        with urlopen(req, timeout=timeout_seconds) as resp:
            status = getattr(resp, "status", 200)
            hdrs = {k.lower(): v for k, v in dict(resp.headers).items()}
            data = resp.read()
            return int(status), hdrs, data
    except HTTPError as e:
        hdrs = {k.lower(): v for k, v in dict(e.headers or {}).items()}
        data = e.read() if hasattr(e, "read") else b""
        return int(getattr(e, "code", 0) or 0), hdrs, data
    except URLError as e:
        raise TransportError(f"http request failed: {e}") from e


def build_headers(settings: Settings) -> dict[str, str]:
    headers = {
        "accept": "application/json",
        "content-type": "application/json",
        "user-agent": f"paas-cli/{__version__}",
    }
    if settings.session_token:
        headers["authorization"] = f"Bearer {settings.session_token}"
    if settings.pod:
        headers["x-pod-id"] = settings.pod
    if settings.users_id:
        headers["x-user-id"] = settings.users_id
    return headers


def _error_message(parsed: Any, text: str) -> str:
    if isinstance(parsed, dict):
        title = str(parsed.get("title") or "").strip()
        desc = str(parsed.get("description") or "").strip()
        if title or desc:
            return f"{title}: {desc}" if title and desc else (title or desc)
        errors = parsed.get("errors")
        if isinstance(errors, list):
            msgs = [
                str(e.get("message") or "").strip()
                for e in errors
                if isinstance(e, dict) and str(e.get("message") or "").strip()
            ]
            if msgs:
                return "; ".join(msgs)
        msg = str(parsed.get("message") or parsed.get("error") or "").strip()
        if msg:
            return msg
    return text.strip() or "(empty response body)"


def convert_response(*, status: int, data: bytes, method: str, path: str) -> Any:
    """Decode a JSON body or raise the error matching the status code."""
    text = data.decode("utf-8", errors="replace")
    parsed: Any = None
    if text.strip():
        try:
            parsed = json.loads(text)
        except Exception as e:
            if 200 <= status < 300:
                raise TransportError(f"invalid JSON from {method} {path}: {e}; body={text}") from e
            parsed = None

    if 200 <= status < 300:
        return parsed

    msg = _error_message(parsed, text)
    err_cls = _STATUS_ERRORS.get(status, ServerError)
    raise err_cls(f"{method} {path} failed: status={status} message={msg}")


def api_request(
    settings: Settings,
    *,
    method: str,
    url: str,
    query: dict[str, Any] | None = None,
    body_obj: Any = None,
) -> Any:
    query_clean = {
        k: str(v)
        for k, v in (query or {}).items()
        if v is not None and str(v).strip() != ""
    }
    full_url = url
    if query_clean:
        full_url += f"?{urlencode(query_clean)}"

    body_bytes = None
    if body_obj is not None:
        body_bytes = json.dumps(body_obj, separators=(",", ":")).encode("utf-8")

    status, _hdrs, data = _http_request(
        method=method,
        url=full_url,
        headers=build_headers(settings),
        body=body_bytes,
    )
    return convert_response(status=status, data=data, method=method.upper(), path=url)


def api_get(settings: Settings, url: str, *, query: dict[str, Any] | None = None) -> Any:
    return api_request(settings, method="GET", url=url, query=query)


def api_post(settings: Settings, url: str, *, body_obj: Any = None) -> Any:
    return api_request(settings, method="POST", url=url, body_obj=body_obj)


def api_delete(settings: Settings, url: str) -> Any:
    return api_request(settings, method="DELETE", url=url)
