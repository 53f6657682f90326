from __future__ import annotations

from dataclasses import dataclass

from .cli_shared import TransportError
from .config import Settings
from .transport import api_get

WORKER_JOB_TYPE = "worker"
JOB_PAGE_SIZE = 1000


@dataclass(frozen=True)
class JobRecord:
    target: str
    status: str
    id: str = ""


def retrieve_by_type(
    settings: Settings,
    svc_id: str,
    job_type: str,
    page: int = 1,
    page_size: int = JOB_PAGE_SIZE,
) -> list[JobRecord]:
    """Fetch a single page of jobs of ``job_type`` for a service."""
    out = api_get(
        settings,
        settings.paas_url(f"/environments/{settings.environment_id}/services/{svc_id}/jobs"),
        query={"type": job_type, "pageNumber": page, "pageSize": page_size},
    )
    if out is None:
        return []
    if not isinstance(out, list):
        raise TransportError("invalid jobs response: expected JSON array")
    return [
        JobRecord(
            target=str(item.get("target") or "").strip(),
            status=str(item.get("status") or "").strip(),
            id=str(item.get("id") or "").strip(),
        )
        for item in out
        if isinstance(item, dict)
    ]
