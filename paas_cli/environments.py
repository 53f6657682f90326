from __future__ import annotations

from dataclasses import dataclass

from .cli_shared import TransportError
from .config import Settings
from .transport import api_get


@dataclass(frozen=True)
class Environment:
    id: str
    name: str
    pod: str
    org_id: str


def list_environments(settings: Settings) -> list[Environment]:
    out = api_get(settings, settings.paas_url("/environments"))
    if not isinstance(out, list):
        raise TransportError("invalid environments response: expected JSON array")
    envs: list[Environment] = []
    for item in out:
        if not isinstance(item, dict):
            continue
        envs.append(
            Environment(
                id=str(item.get("id") or "").strip(),
                name=str(item.get("name") or "").strip(),
                pod=str(item.get("pod") or "").strip(),
                org_id=str(item.get("organizationId") or item.get("orgId") or "").strip(),
            )
        )
    return envs


def retrieve_by_name(settings: Settings, name: str) -> Environment | None:
    want = (name or "").strip()
    for env in list_environments(settings):
        if env.name == want:
            return env
    return None
