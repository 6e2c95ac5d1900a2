"""
自动化运行结果 API 测试
"""
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from qadashboard.database.models import Project
from qadashboard.main import app


def upload(client, project_id="kanban", **stats):
    body = {"stats": {"total": 10, "passed": 10, "failed": 0, "skipped": 0, "duration": 1234}}
    body["stats"].update(stats)
    return client.post(f"/api/upload/{project_id}", json=body)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "qa-dashboard"}

    response = client.get("/api/health")
    assert response.status_code == 200
    assert "timestamp" in response.json()


def test_upload_results(client):
    """上传结果：失败数 > 0 时 exit_code = 1"""
    response = upload(client, passed=8, failed=2)

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Results uploaded"
    assert data["run"]["exit_code"] == 1
    assert data["run"]["source"] == "ci-upload"
    assert data["run"]["stats"]["failed"] == 2


def test_upload_custom_source(client):
    response = client.post(
        "/api/upload/kanban",
        json={"stats": {"passed": 3}, "source": "local", "suites": [{"title": "auth.spec.ts"}]},
    )

    assert response.status_code == 200
    run = response.json()["run"]
    assert run["source"] == "local"
    assert run["exit_code"] == 0
    assert run["suites"] == [{"title": "auth.spec.ts"}]


def test_upload_requires_stats(client):
    response = client.post("/api/upload/kanban", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid stats object"}


def test_upload_rejects_negative_stats(client):
    response = client.post("/api/upload/kanban", json={"stats": {"passed": -1}})

    assert response.status_code == 400


def test_invalid_project_id(client):
    """项目 ID 只允许字母数字、下划线、连字符"""
    for bad in ["bad.id", "a" * 101, "semi;colon"]:
        response = upload(client, project_id=bad)
        assert response.status_code == 400, bad
        assert response.json() == {"error": "Invalid project ID"}


def test_results_summary(client, db):
    db.add(Project(id="calify", name="Calify"))
    db.commit()
    upload(client, passed=9, failed=1)

    response = client.get("/api/results")

    assert response.status_code == 200
    data = response.json()
    assert data["kanban"]["status"] == "failed"
    assert data["kanban"]["last_run"]["exit_code"] == 1
    assert data["calify"] == {
        "name": "Calify",
        "last_run": None,
        "passed": 0,
        "failed": 0,
        "skipped": 0,
        "total": 0,
        "status": "unknown",
    }


def test_project_results(client):
    upload(client)
    upload(client, failed=1)

    response = client.get("/api/results/kanban?limit=1")

    assert response.status_code == 200
    data = response.json()
    assert len(data["runs"]) == 1
    assert data["last_run"]["stats"]["failed"] == 1


def test_project_results_unknown_project(client):
    response = client.get("/api/results/unknown")

    assert response.status_code == 404
    assert response.json() == {"error": "Project not found"}


def test_history_respects_retention(client, registry):
    """registry.run_retention = 5"""
    for _ in range(registry.run_retention + 2):
        upload(client)

    response = client.get("/api/history/kanban")

    assert response.status_code == 200
    assert len(response.json()) == registry.run_retention


def test_history_unknown_project(client):
    assert client.get("/api/history/unknown").status_code == 404


def test_projects_listed_after_upload(client):
    upload(client, project_id="grablist")

    response = client.get("/api/projects")

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == ["grablist"]


def test_poll(client):
    response = client.get("/api/poll")
    assert response.json() == {"latest": None, "has_updates": False}

    upload(client)
    since = (datetime.now(timezone.utc) - timedelta(minutes=5)).isoformat()

    response = client.get("/api/poll", params={"since": since})

    assert response.status_code == 200
    assert response.json()["has_updates"] is True


def test_run_without_runner_configured(client):
    upload(client)

    response = client.post("/api/run/kanban", json={})

    assert response.status_code == 404
    assert response.json() == {"error": "No test runner configured for project"}


def test_run_unknown_project(client):
    response = client.post("/api/run/unknown")

    assert response.status_code == 404


def test_migrate_requires_key(client):
    response = client.post("/api/migrate")

    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized"}


def test_migrate_with_key(client, monkeypatch):
    from qadashboard.core.config import settings

    monkeypatch.setattr(settings, "MIGRATION_KEY", "secret")
    # 不触碰真实数据库
    monkeypatch.setattr("qadashboard.api.v1.routes_admin.init_db", lambda: None)

    response = client.post("/api/migrate", headers={"X-Migration-Key": "secret"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert "test_runs" in response.json()["tables"]


def test_run_started(client, registry, monkeypatch, tmp_path):
    """后台执行：立即返回 202，grep 参数已清理"""
    calls = []

    class StubRunner:
        async def start(self, project_id, workdir, grep=None):
            calls.append((project_id, workdir, grep))

    upload(client)
    monkeypatch.setattr(app.state, "registry", replace(registry, runner_projects={"kanban": tmp_path}))
    monkeypatch.setattr(app.state, "test_runner", StubRunner())

    response = client.post("/api/run/kanban", json={"grep": "smoke; login"})

    assert response.status_code == 202
    assert response.json() == {"message": "Test run started", "project_id": "kanban", "grep": "smoke login"}
    assert calls == [("kanban", tmp_path, "smoke login")]
