"""QA Dashboard - Automated Results API Routes

自动化运行结果：上传、总览、历史、轮询、后台执行
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from qadashboard.api.deps import (
    get_registry,
    get_run_service,
    get_test_runner,
    valid_project_id,
)
from qadashboard.core.exceptions import NotFoundError
from qadashboard.core.registry import ProjectRegistry
from qadashboard.models.run_schemas import (
    PollResponse,
    ProjectResponse,
    ProjectResultsResponse,
    ProjectSummary,
    RunDetailResponse,
    RunResponse,
    RunStartedResponse,
    RunTrigger,
    RunUpload,
    UploadResponse,
)
from qadashboard.services.notifier import RESULTS_UPLOADED, ConnectionManager, get_notifier, make_event
from qadashboard.services.run_service import RunService
from qadashboard.services.test_runner import PlaywrightRunner, sanitize_grep

router = APIRouter(tags=["results"])


@router.get("/projects", response_model=list[ProjectResponse])
def list_projects(service: RunService = Depends(get_run_service)):
    """项目列表（按名称）"""
    return [ProjectResponse.model_validate(p) for p in service.list_projects()]


@router.get("/results", response_model=dict[str, ProjectSummary])
def get_results_summary(service: RunService = Depends(get_run_service)):
    """看板总览：每个项目的最新运行"""
    summary = service.results_summary()
    return {
        project_id: ProjectSummary(
            **{
                **entry,
                "last_run": RunResponse.from_run(entry["last_run"]) if entry["last_run"] else None,
            }
        )
        for project_id, entry in summary.items()
    }


@router.get("/results/{project_id}", response_model=ProjectResultsResponse)
def get_project_results(
    project_id: str = Depends(valid_project_id),
    limit: int = Query(default=20, ge=1, le=200),
    service: RunService = Depends(get_run_service),
):
    """项目最近的运行（含 suites / errors）"""
    runs = [RunDetailResponse.from_run(r) for r in service.project_results(project_id, limit=limit)]
    return ProjectResultsResponse(runs=runs, last_run=runs[0] if runs else None)


@router.get("/history/{project_id}", response_model=list[RunResponse])
def get_history(
    project_id: str = Depends(valid_project_id),
    service: RunService = Depends(get_run_service),
):
    """项目运行历史"""
    return [RunResponse.from_run(r) for r in service.history(project_id)]


@router.post("/upload/{project_id}", response_model=UploadResponse)
def upload_results(
    req: RunUpload,
    background_tasks: BackgroundTasks,
    project_id: str = Depends(valid_project_id),
    service: RunService = Depends(get_run_service),
    notifier: ConnectionManager = Depends(get_notifier),
):
    """上传一次运行结果（CI 或本地执行）"""
    run = service.record_run(
        project_id,
        req.stats.model_dump() if req.stats else None,
        suites=req.suites,
        errors=req.errors,
        source=req.source,
    )
    detail = RunDetailResponse.from_run(run)
    background_tasks.add_task(
        notifier.broadcast,
        make_event(RESULTS_UPLOADED, {"project_id": project_id, "run": detail.model_dump(mode="json")}),
    )
    return UploadResponse(message="Results uploaded", run=detail)


@router.get("/poll", response_model=PollResponse)
def poll(
    since: Optional[datetime] = None,
    service: RunService = Depends(get_run_service),
):
    """变更检测：客户端比较 latest 决定是否刷新"""
    return PollResponse(**service.poll(since))


@router.post("/run/{project_id}", response_model=RunStartedResponse, status_code=202)
async def trigger_run(
    req: Optional[RunTrigger] = None,
    project_id: str = Depends(valid_project_id),
    service: RunService = Depends(get_run_service),
    registry: ProjectRegistry = Depends(get_registry),
    runner: PlaywrightRunner = Depends(get_test_runner),
):
    """后台执行项目的 Playwright 测试，结果通过 WebSocket 推送"""
    service.get_project(project_id)
    workdir = registry.runner_workdir(project_id)
    if workdir is None:
        raise NotFoundError("No test runner configured for project")

    grep = sanitize_grep(req.grep if req else None)
    await runner.start(project_id, workdir, grep)
    return RunStartedResponse(message="Test run started", project_id=project_id, grep=grep)
