import argparse
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from paas_cli.cli import app, main
from paas_cli.cli_shared import GlobalOpts, NotFoundError, TransportError
from paas_cli.config import Settings
from paas_cli.jobs import JobRecord
from paas_cli.services import ServiceRef
from paas_cli.workers import WorkerDeclaration, cmd_worker_list, retrieve_workers


def _g(*, pretty: bool = False) -> GlobalOpts:
    return GlobalOpts(settings_path="/tmp/paas-test-settings.json", pretty=pretty)


def _settings(tmp_path: Path | None = None) -> Settings:
    return Settings(
        settings_path=(tmp_path or Path("/tmp")) / "settings.json",
        paas_host="https://paas.example.invalid",
        session_token="tok-1",
        environment_alias="prod",
        environment_id="env-1",
        environment_name="prod-env",
        org_id="org-1",
        pod="pod01",
    )


def _squash(s: str) -> str:
    return " ".join(s.split())


def _patch_session(monkeypatch, settings: Settings | None = None) -> Settings:
    settings = settings or _settings()
    monkeypatch.setattr("paas_cli.workers.open_session", lambda _g, **_kw: settings)
    return settings


def _patch_directories(monkeypatch, *, service, workers, jobs):
    calls: dict = {}

    def fake_jobs(settings, svc_id, job_type, page, page_size):
        calls["jobs"] = (svc_id, job_type, page, page_size)
        return jobs

    monkeypatch.setattr("paas_cli.services.retrieve_by_label", lambda _s, label: service)
    monkeypatch.setattr("paas_cli.workers.retrieve_workers", lambda _s, _id: workers)
    monkeypatch.setattr("paas_cli.jobs.retrieve_by_type", fake_jobs)
    return calls


def test_cmd_worker_list_renders_sorted_table_and_usage(monkeypatch, capsys):
    _patch_session(monkeypatch)
    calls = _patch_directories(
        monkeypatch,
        service=ServiceRef(label="code-1", id="svc-1", worker_scale=5),
        workers=WorkerDeclaration(workers={"worker-b": 1, "worker-a": 2}, worker_scale=5),
        jobs=[
            JobRecord(target="worker-a", status="running"),
            JobRecord(target="worker-a", status="running"),
            JobRecord(target="worker-b", status="pending"),
        ],
    )

    args = argparse.Namespace(service_label="code-1", json_output=False)
    assert cmd_worker_list(args, _g()) == 0

    out = capsys.readouterr().out
    lines = out.splitlines()
    assert lines[0] == "TARGET    SCALE  RUNNING JOBS"
    assert lines[1] == "worker-a  2      2"
    assert lines[2] == "worker-b  1      0"
    assert "You are using 3 out of your available 5 workers for code-1" in out
    assert calls["jobs"] == ("svc-1", "worker", 1, 1000)


def test_cmd_worker_list_includes_undeclared_targets(monkeypatch, capsys):
    _patch_session(monkeypatch)
    _patch_directories(
        monkeypatch,
        service=ServiceRef(label="code-1", id="svc-1", worker_scale=4),
        workers=WorkerDeclaration(workers={"worker-a": 1}, worker_scale=4),
        jobs=[JobRecord(target="worker-x", status="running")],
    )

    assert cmd_worker_list(argparse.Namespace(service_label="code-1", json_output=False), _g()) == 0
    out = capsys.readouterr().out
    assert "worker-a  1      0" in out
    assert "worker-x  0      1" in out
    assert "You are using 1 out of your available 4 workers for code-1" in out


def test_cmd_worker_list_no_declarations_skips_job_lookup(monkeypatch, capsys):
    _patch_session(monkeypatch)
    monkeypatch.setattr(
        "paas_cli.services.retrieve_by_label",
        lambda _s, _label: ServiceRef(label="code-1", id="svc-1", worker_scale=3),
    )
    monkeypatch.setattr(
        "paas_cli.workers.retrieve_workers",
        lambda _s, _id: WorkerDeclaration(workers={}, worker_scale=3),
    )

    def boom(*_a, **_k):
        raise AssertionError("jobs must not be fetched when no workers are declared")

    monkeypatch.setattr("paas_cli.jobs.retrieve_by_type", boom)

    assert cmd_worker_list(argparse.Namespace(service_label="code-1", json_output=False), _g()) == 0
    out = capsys.readouterr().out
    assert "No running workers found for code-1" in out
    assert "You are using 0 out of your available 3 workers for code-1" in out
    assert "TARGET" not in out


def test_cmd_worker_list_unknown_label_raises_not_found(monkeypatch):
    _patch_session(monkeypatch)
    monkeypatch.setattr("paas_cli.services.retrieve_by_label", lambda _s, _label: None)

    with pytest.raises(NotFoundError) as exc:
        cmd_worker_list(argparse.Namespace(service_label="nope", json_output=False), _g())
    assert 'Could not find a service with the label "nope"' in str(exc.value)


def test_cmd_worker_list_json_output(monkeypatch, capsys):
    _patch_session(monkeypatch)
    _patch_directories(
        monkeypatch,
        service=ServiceRef(label="code-1", id="svc-1", worker_scale=5),
        workers=WorkerDeclaration(workers={"a": 2}, worker_scale=5),
        jobs=[JobRecord(target="a", status="running"), JobRecord(target="b", status="running")],
    )

    assert cmd_worker_list(argparse.Namespace(service_label="code-1", json_output=True), _g()) == 0
    out = json.loads(capsys.readouterr().out)
    assert out == {
        "service": "code-1",
        "workerScale": 5,
        "total": 2,
        "workers": {"a": {"scale": 2, "running": 1}, "b": {"scale": 0, "running": 1}},
    }


def test_retrieve_workers_parses_response(monkeypatch):
    captured: dict = {}

    def fake_get(settings, url, **_kw):
        captured["url"] = url
        return {"workers": {"queue": 2, "mailer": "1"}, "workerScale": 6}

    monkeypatch.setattr("paas_cli.workers.api_get", fake_get)
    declared = retrieve_workers(_settings(), "svc-9")
    assert declared == WorkerDeclaration(workers={"queue": 2, "mailer": 1}, worker_scale=6)
    assert captured["url"] == "https://paas.example.invalid/v1/environments/env-1/services/svc-9/workers"


def test_retrieve_workers_rejects_non_integer_scale(monkeypatch):
    monkeypatch.setattr(
        "paas_cli.workers.api_get",
        lambda *_a, **_k: {"workers": {"queue": "lots"}, "workerScale": 1},
    )
    with pytest.raises(TransportError):
        retrieve_workers(_settings(), "svc-9")


def test_retrieve_workers_rejects_fractional_scale(monkeypatch):
    monkeypatch.setattr(
        "paas_cli.workers.api_get",
        lambda *_a, **_k: {"workers": {"queue": 2.7}, "workerScale": 1},
    )
    with pytest.raises(TransportError, match="2.7"):
        retrieve_workers(_settings(), "svc-9")


def test_retrieve_workers_accepts_whole_float_scale(monkeypatch):
    monkeypatch.setattr(
        "paas_cli.workers.api_get",
        lambda *_a, **_k: {"workers": {"queue": 3.0}, "workerScale": 4.0},
    )
    assert retrieve_workers(_settings(), "svc-9") == WorkerDeclaration(workers={"queue": 3}, worker_scale=4)


def test_cmd_worker_list_shows_dash_for_job_without_target(monkeypatch, capsys):
    _patch_session(monkeypatch)
    _patch_directories(
        monkeypatch,
        service=ServiceRef(label="code-1", id="svc-1", worker_scale=2),
        workers=WorkerDeclaration(workers={"worker-a": 1}, worker_scale=2),
        jobs=[JobRecord(target="", status="running")],
    )

    assert cmd_worker_list(argparse.Namespace(service_label="code-1", json_output=False), _g()) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "TARGET    SCALE  RUNNING JOBS"
    assert lines[1] == "-" + " " * 9 + "0" + " " * 6 + "1"
    assert lines[2] == "worker-a  1      0"


def test_worker_list_end_to_end_over_fake_transport(monkeypatch):
    _patch_session(monkeypatch)
    seen: list[str] = []

    def fake_http(*, method, url, headers, body=None, timeout_seconds=30):
        seen.append(url)
        assert headers["authorization"] == "Bearer tok-1"
        assert headers["x-pod-id"] == "pod01"
        if url.endswith("/environments/env-1/services"):
            doc = [{"id": "svc-1", "label": "code-1", "workerScale": 2}]
        elif url.endswith("/services/svc-1/workers"):
            doc = {"workers": {"worker-a": 2}, "workerScale": 2}
        elif "/services/svc-1/jobs?" in url:
            doc = [{"id": "j1", "target": "worker-a", "status": "running"}]
        else:
            return 404, {}, b'{"message":"not found"}'
        return 200, {}, json.dumps(doc).encode("utf-8")

    monkeypatch.setattr("paas_cli.transport._http_request", fake_http)

    runner = CliRunner()
    result = runner.invoke(app, ["worker", "list", "code-1"])
    assert result.exit_code == 0, result.output
    assert "worker-a  2      1" in result.output
    assert "You are using 2 out of your available 2 workers for code-1" in result.output
    assert any("type=worker" in u and "pageNumber=1" in u and "pageSize=1000" in u for u in seen)


def test_main_worker_list_unknown_label_exits_non_zero(monkeypatch, capsys):
    monkeypatch.setattr("paas_cli.cli.load_dotenv", lambda *a, **k: True)
    _patch_session(monkeypatch)
    monkeypatch.setattr("paas_cli.services.retrieve_by_label", lambda _s, _label: None)

    code = main(["worker", "list", "ghost"])
    captured = capsys.readouterr()
    assert code == 1
    assert 'Could not find a service with the label "ghost"' in _squash(captured.err)
    assert captured.out == ""
