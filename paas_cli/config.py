"""Local settings file and the per-invocation settings context.

The settings file is a JSON object::

    {
      "sessionToken": "...",
      "usersId": "...",
      "username": "...",
      "default": "prod",
      "environments": {
        "prod": {"environmentId": "...", "name": "...", "orgId": "...",
                 "pod": "...", "directory": "/home/me/app"}
      }
    }

Hosts and versions come from the environment (or defaults) and are never
persisted.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .cli_shared import (
    DEFAULT_AUTH_HOST,
    DEFAULT_HOST_VERSION,
    DEFAULT_PAAS_HOST,
    PAAS_AUTH_HOST,
    PAAS_AUTH_HOST_VERSION,
    PAAS_ENV,
    PAAS_HOST,
    PAAS_HOST_VERSION,
    PAAS_SESSION_TOKEN,
    PAAS_SETTINGS,
    AuthorizationError,
    GlobalOpts,
    LocalStateError,
    _env_or_none,
    _load_json_object,
    _write_secure_json,
)


@dataclass(frozen=True)
class Breadcrumb:
    alias: str
    environment_id: str
    name: str
    org_id: str
    pod: str
    directory: str = ""

    def to_doc(self) -> dict[str, str]:
        return {
            "environmentId": self.environment_id,
            "name": self.name,
            "orgId": self.org_id,
            "pod": self.pod,
            "directory": self.directory,
        }

    @classmethod
    def from_doc(cls, alias: str, doc: dict[str, Any]) -> Breadcrumb:
        return cls(
            alias=alias,
            environment_id=str(doc.get("environmentId") or "").strip(),
            name=str(doc.get("name") or "").strip(),
            org_id=str(doc.get("orgId") or "").strip(),
            pod=str(doc.get("pod") or "").strip(),
            directory=str(doc.get("directory") or "").strip(),
        )


@dataclass
class Settings:
    settings_path: Path
    paas_host: str = DEFAULT_PAAS_HOST
    paas_host_version: str = DEFAULT_HOST_VERSION
    auth_host: str = DEFAULT_AUTH_HOST
    auth_host_version: str = DEFAULT_HOST_VERSION
    session_token: str = ""
    users_id: str = ""
    username: str = ""
    default: str = ""
    environments: dict[str, Breadcrumb] = field(default_factory=dict)
    environment_alias: str = ""
    environment_id: str = ""
    environment_name: str = ""
    org_id: str = ""
    pod: str = ""

    def paas_url(self, path: str) -> str:
        return f"{self.paas_host.rstrip('/')}{self.paas_host_version}{path}"

    def auth_url(self, path: str) -> str:
        return f"{self.auth_host.rstrip('/')}{self.auth_host_version}{path}"

    def select(self, crumb: Breadcrumb) -> None:
        self.environment_alias = crumb.alias
        self.environment_id = crumb.environment_id
        self.environment_name = crumb.name
        self.org_id = crumb.org_id
        self.pod = crumb.pod


def default_settings_path() -> Path:
    override = _env_or_none(PAAS_SETTINGS)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".paas" / "settings.json"


def _read_settings_doc(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise LocalStateError(f"failed to read settings file {path}: {e}") from e
    if not raw.strip():
        return {}
    return _load_json_object(raw=raw, label=f"settings file {path}")


def load_settings(g: GlobalOpts, *, cwd: str | None = None, select_env: bool = True) -> Settings:
    path = Path(g.settings_path).expanduser() if g.settings_path else default_settings_path()
    doc = _read_settings_doc(path)

    crumbs: dict[str, Breadcrumb] = {}
    envs = doc.get("environments")
    if isinstance(envs, dict):
        for alias, item in envs.items():
            if isinstance(item, dict):
                crumbs[str(alias)] = Breadcrumb.from_doc(str(alias), item)

    settings = Settings(
        settings_path=path,
        paas_host=_env_or_none(PAAS_HOST) or DEFAULT_PAAS_HOST,
        paas_host_version=_env_or_none(PAAS_HOST_VERSION) or DEFAULT_HOST_VERSION,
        auth_host=_env_or_none(PAAS_AUTH_HOST) or DEFAULT_AUTH_HOST,
        auth_host_version=_env_or_none(PAAS_AUTH_HOST_VERSION) or DEFAULT_HOST_VERSION,
        session_token=_env_or_none(PAAS_SESSION_TOKEN) or str(doc.get("sessionToken") or "").strip(),
        users_id=str(doc.get("usersId") or "").strip(),
        username=str(doc.get("username") or "").strip(),
        default=str(doc.get("default") or "").strip(),
        environments=crumbs,
    )
    if not select_env:
        return settings
    alias = (g.env_alias or _env_or_none(PAAS_ENV) or "").strip()
    crumb = select_breadcrumb(settings, alias=alias, cwd=cwd or os.getcwd())
    if crumb is not None:
        settings.select(crumb)
    return settings


def select_breadcrumb(settings: Settings, *, alias: str, cwd: str) -> Breadcrumb | None:
    """Pick the environment this invocation works against.

    An explicit alias wins; otherwise a breadcrumb recorded for the current
    directory; otherwise the default alias. An explicit alias that is not
    associated is an error rather than a silent fallback.
    """
    if alias:
        crumb = settings.environments.get(alias)
        if crumb is None:
            raise AuthorizationError(
                f'no environment with alias "{alias}" has been associated. '
                'Run "paas associated" to list your associated environments.'
            )
        return crumb
    here = os.path.realpath(cwd)
    for crumb in settings.environments.values():
        if crumb.directory and os.path.realpath(crumb.directory) == here:
            return crumb
    if settings.default:
        return settings.environments.get(settings.default)
    return None


def save_settings(settings: Settings) -> None:
    doc: dict[str, Any] = {
        "sessionToken": settings.session_token,
        "usersId": settings.users_id,
        "username": settings.username,
        "default": settings.default,
        "environments": {alias: c.to_doc() for alias, c in sorted(settings.environments.items())},
    }
    _write_secure_json(path=settings.settings_path, obj=doc)


def add_breadcrumb(settings: Settings, crumb: Breadcrumb, *, make_default: bool = False) -> None:
    settings.environments[crumb.alias] = crumb
    if make_default:
        settings.default = crumb.alias
    save_settings(settings)


def delete_breadcrumb(settings: Settings, alias: str) -> bool:
    """Remove an alias from the settings file; returns whether it existed."""
    existed = settings.environments.pop(alias, None) is not None
    changed = existed
    if settings.default == alias:
        settings.default = ""
        changed = True
    if settings.environment_alias == alias:
        settings.environment_alias = ""
        settings.environment_id = ""
        settings.environment_name = ""
        settings.org_id = ""
        settings.pod = ""
    if changed:
        save_settings(settings)
    return existed


def check_required_association(settings: Settings, *, needs_env: bool, needs_org: bool) -> None:
    if needs_env and not settings.environment_id:
        raise AuthorizationError(
            "no environment has been associated. Run \"paas associate\" from a local "
            "code repository, pass --env, or set a default environment"
        )
    if needs_org and not settings.org_id:
        raise AuthorizationError(
            f'environment "{settings.environment_alias or settings.environment_name}" has no '
            'organization recorded. Run "paas disassociate" and "paas associate" again'
        )
