from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence


class AuthInputError(ValueError):
    """Raised when sign-in inputs are missing or conflicting."""


@dataclass(frozen=True)
class BasicCredentials:
    username: str
    password: str


@dataclass(frozen=True)
class SessionGrant:
    session_token: str
    users_id: str


def _require_non_empty(val: str | None, *, name: str, hint: str) -> str:
    out = (val or "").strip()
    if not out:
        raise AuthInputError(f"missing {name} ({hint})")
    return out


def resolve_basic_credentials(
    *,
    username: str | None,
    password: str | None,
    env_or_none: Callable[..., str | None],
    prompt: Callable[[str, bool], str] | None = None,
    username_env_names: Sequence[str] = ("PAAS_USERNAME",),
    password_env_names: Sequence[str] = ("PAAS_PASSWORD",),
) -> BasicCredentials:
    """Resolve username/password from explicit values, env, then an interactive prompt.

    ``prompt(label, hide_input)`` is only consulted for values still missing
    after the explicit and environment lookups.
    """
    username_hint_env = str(username_env_names[0]).strip() if username_env_names else "PAAS_USERNAME"
    password_hint_env = str(password_env_names[0]).strip() if password_env_names else "PAAS_PASSWORD"
    resolved_username = (username or env_or_none(*username_env_names) or "").strip()
    if not resolved_username and prompt is not None:
        resolved_username = prompt("Username", False)
    resolved_username = _require_non_empty(
        resolved_username,
        name="username",
        hint=f"env {username_hint_env} or interactive prompt",
    )
    resolved_password = (password or env_or_none(*password_env_names) or "").strip()
    if not resolved_password and prompt is not None:
        resolved_password = prompt("Password", True)
    resolved_password = _require_non_empty(
        resolved_password,
        name="password",
        hint=f"env {password_hint_env} or interactive prompt",
    )
    return BasicCredentials(username=resolved_username, password=resolved_password)


def session_grant_from_doc(doc: object) -> SessionGrant:
    if not isinstance(doc, dict):
        raise AuthInputError("sign-in response is not a JSON object")
    token = _require_non_empty(
        str(doc.get("sessionToken") or ""),
        name="sessionToken",
        hint="sign-in response did not include a session token",
    )
    users_id = str(doc.get("usersId") or doc.get("id") or "").strip()
    return SessionGrant(session_token=token, users_id=users_id)
