from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from typing import Iterable, Mapping

from . import jobs as jobs_dir
from . import services as services_dir
from .auth import open_session
from .cli_shared import GlobalOpts, NotFoundError, TransportError, _print_json
from .config import Settings
from .jobs import JobRecord
from .services import _int_field
from .tables import cell, print_table
from .transport import api_get


@dataclass
class WorkerJobs:
    scale: int
    running: int = 0


@dataclass(frozen=True)
class WorkerDeclaration:
    workers: dict[str, int]
    worker_scale: int


def retrieve_workers(settings: Settings, svc_id: str) -> WorkerDeclaration:
    out = api_get(
        settings,
        settings.paas_url(f"/environments/{settings.environment_id}/services/{svc_id}/workers"),
    )
    if out is None:
        out = {}
    if not isinstance(out, dict):
        raise TransportError("invalid workers response: expected JSON object")
    raw_workers = out.get("workers") or {}
    if not isinstance(raw_workers, dict):
        raise TransportError("invalid workers response: workers must be an object")
    workers = {
        str(target): _int_field(scale, label=f"scale for worker {target!r}")
        for target, scale in raw_workers.items()
    }
    return WorkerDeclaration(
        workers=workers,
        worker_scale=_int_field(out.get("workerScale"), label="workerScale"),
    )


def reconcile_workers(
    declarations: Mapping[str, int],
    jobs: Iterable[JobRecord],
) -> tuple[dict[str, WorkerJobs], int]:
    """Merge declared scale per target with observed jobs.

    Targets seen only in jobs are kept with scale 0 so that stray running
    jobs still surface. Scales are passed through as declared.
    """
    summary = {target: WorkerJobs(scale=scale) for target, scale in declarations.items()}
    for job in jobs:
        entry = summary.setdefault(job.target, WorkerJobs(scale=0))
        if job.status == "running":
            entry.running += 1
    total = sum(entry.scale for entry in summary.values())
    return summary, total


def _usage_line(total: int, available: int, label: str) -> str:
    return f"You are using {total} out of your available {available} workers for {label}"


def cmd_worker_list(args: argparse.Namespace, g: GlobalOpts) -> int:
    settings = open_session(g, needs_env=True, needs_org=False)
    label = str(args.service_label or "").strip()
    service = services_dir.retrieve_by_label(settings, label)
    if service is None:
        raise NotFoundError(
            f'Could not find a service with the label "{label}" in {settings.environment_name or settings.environment_id}.'
        )
    declared = retrieve_workers(settings, service.id)
    available = service.worker_scale or declared.worker_scale
    wants_json = bool(getattr(args, "json_output", False))

    if not declared.workers:
        if wants_json:
            _print_json(
                {"service": label, "workerScale": available, "total": 0, "workers": {}},
                pretty=g.pretty,
            )
            return 0
        sys.stdout.write(f"No running workers found for {label}\n")
        sys.stdout.write(f"\n{_usage_line(0, available, label)}\n")
        return 0

    observed = jobs_dir.retrieve_by_type(settings, service.id, jobs_dir.WORKER_JOB_TYPE, 1, jobs_dir.JOB_PAGE_SIZE)
    summary, total = reconcile_workers(declared.workers, observed)

    if wants_json:
        _print_json(
            {
                "service": label,
                "workerScale": available,
                "total": total,
                "workers": {
                    target: {"scale": wj.scale, "running": wj.running}
                    for target, wj in sorted(summary.items())
                },
            },
            pretty=g.pretty,
        )
        return 0

    rows = [[cell(target), str(wj.scale), str(wj.running)] for target, wj in sorted(summary.items())]
    print_table(
        headers=["TARGET", "SCALE", "RUNNING JOBS"],
        rows=rows,
        empty_message=f"No running workers found for {label}",
    )
    sys.stdout.write(f"\n{_usage_line(total, available, label)}\n")
    return 0
