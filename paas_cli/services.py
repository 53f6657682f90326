from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .cli_shared import TransportError
from .config import Settings
from .transport import api_get


@dataclass(frozen=True)
class ServiceRef:
    label: str
    id: str
    worker_scale: int = 0


def _int_field(raw: Any, *, label: str) -> int:
    if raw is None or raw == "":
        return 0
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise TransportError(f"invalid {label}: expected integer, got {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise TransportError(f"invalid {label}: expected integer, got {raw!r}") from e


def _service_from_doc(doc: dict[str, Any]) -> ServiceRef:
    return ServiceRef(
        label=str(doc.get("label") or "").strip(),
        id=str(doc.get("id") or "").strip(),
        worker_scale=_int_field(doc.get("workerScale"), label="workerScale"),
    )


def list_services(settings: Settings) -> list[ServiceRef]:
    out = api_get(settings, settings.paas_url(f"/environments/{settings.environment_id}/services"))
    if not isinstance(out, list):
        raise TransportError("invalid services response: expected JSON array")
    return [_service_from_doc(item) for item in out if isinstance(item, dict)]


def retrieve_by_label(settings: Settings, label: str) -> ServiceRef | None:
    want = (label or "").strip()
    for svc in list_services(settings):
        if svc.label == want:
            return svc
    return None
