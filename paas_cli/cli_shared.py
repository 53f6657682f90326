from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any


class PaasCliError(Exception):
    pass


class UsageError(PaasCliError):
    pass


class OpError(PaasCliError):
    pass


class NotFoundError(OpError):
    pass


class AuthenticationError(OpError):
    pass


class AuthorizationError(OpError):
    pass


class ValidationError(OpError):
    pass


class ServerError(OpError):
    pass


class TransportError(OpError):
    pass


class LocalStateError(OpError):
    pass


PAAS_SETTINGS = "PAAS_SETTINGS"
PAAS_HOST = "PAAS_HOST"
PAAS_HOST_VERSION = "PAAS_HOST_VERSION"
PAAS_AUTH_HOST = "PAAS_AUTH_HOST"
PAAS_AUTH_HOST_VERSION = "PAAS_AUTH_HOST_VERSION"
PAAS_ENV = "PAAS_ENV"
PAAS_USERNAME = "PAAS_USERNAME"
PAAS_PASSWORD = "PAAS_PASSWORD"
PAAS_SESSION_TOKEN = "PAAS_SESSION_TOKEN"

DEFAULT_PAAS_HOST = "https://paas-api.example.io"
DEFAULT_AUTH_HOST = "https://auth.example.io"
DEFAULT_HOST_VERSION = "/v1"


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


@dataclass(frozen=True)
class GlobalOpts:
    settings_path: str
    env_alias: str = ""
    pretty: bool = True
    quiet: bool = False


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


def _print_json(obj: Any, *, pretty: bool) -> None:
    if pretty:
        sys.stdout.write(json.dumps(obj, indent=2, sort_keys=True) + "\n")
    else:
        sys.stdout.write(json.dumps(obj, separators=(",", ":"), sort_keys=True) + "\n")


def _load_json_object(*, raw: str, label: str) -> dict[str, Any]:
    try:
        val = json.loads(raw)
    except Exception as e:
        raise LocalStateError(f"invalid {label}: {e}") from e
    if not isinstance(val, dict):
        raise LocalStateError(f"invalid {label}: expected JSON object")
    return val


def _write_secure_json(*, path: Path, obj: dict[str, Any]) -> None:
    _write_secure_text(path=path, text=json.dumps(obj, indent=2, sort_keys=True) + "\n")


def _write_secure_text(*, path: Path, text: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise LocalStateError(f"failed to write {path}: {e}") from e
    try:
        os.chmod(path, 0o600)
    except Exception as e:
        raise LocalStateError(f"failed to apply 0600 permissions to {path}: {e}") from e
