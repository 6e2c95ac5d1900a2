"""QA Dashboard - Manual Testing API Routes

手工测试：清单、会话、条目、缺陷报告
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from qadashboard.api.deps import (
    ensure_project_id,
    get_checklist_service,
    get_session_service,
    valid_project_id,
)
from qadashboard.database.config import get_db
from qadashboard.models.checklist_schemas import ChecklistResponse, ChecklistSummary
from qadashboard.models.session_schemas import (
    BugReportResponse,
    ItemCreate,
    ItemRemovalResponse,
    ItemResponse,
    ItemStatusUpdate,
    SessionCreate,
    SessionDetailResponse,
    SessionResponse,
    SessionUpdate,
)
from qadashboard.services.checklist.service import ChecklistService
from qadashboard.services.issue_tracker import IssueTrackerClient, get_issue_tracker
from qadashboard.services.notifier import SESSION_UPDATED, ConnectionManager, get_notifier, make_event
from qadashboard.services.report_service import BugReportService
from qadashboard.services.session_service import SessionService

router = APIRouter(prefix="/manual", tags=["manual"])


def _notify_session(
    background_tasks: BackgroundTasks,
    notifier: ConnectionManager,
    session_id: str,
    action: str,
) -> None:
    background_tasks.add_task(
        notifier.broadcast,
        make_event(SESSION_UPDATED, {"session_id": session_id, "action": action}),
    )


# ============== Checklists ==============


@router.get("/checklists", response_model=list[ChecklistSummary])
def list_checklists(service: ChecklistService = Depends(get_checklist_service)):
    """可用的测试清单"""
    return service.list_checklists()


@router.get("/checklists/{project_id}", response_model=ChecklistResponse)
def get_checklist(
    project_id: str = Depends(valid_project_id),
    service: ChecklistService = Depends(get_checklist_service),
):
    """解析后的项目清单"""
    return service.get_checklist(project_id).to_dict()


# ============== Sessions ==============


@router.post("/sessions", response_model=SessionDetailResponse, status_code=201)
def create_session(
    req: SessionCreate,
    background_tasks: BackgroundTasks,
    checklists: ChecklistService = Depends(get_checklist_service),
    service: SessionService = Depends(get_session_service),
    notifier: ConnectionManager = Depends(get_notifier),
):
    """从项目清单创建手工测试会话"""
    project_id = ensure_project_id(req.project_id)
    checklist = checklists.get_checklist(project_id)

    session = service.create_session(
        project_id,
        checklist,
        created_by=req.created_by,
        notes=req.notes,
    )
    _notify_session(background_tasks, notifier, session.session_id, "created")
    return SessionDetailResponse.model_validate(session)


@router.get("/sessions", response_model=list[SessionResponse])
def list_sessions(
    project_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=200),
    service: SessionService = Depends(get_session_service),
):
    """会话列表"""
    if project_id:
        ensure_project_id(project_id)
    sessions = service.list_sessions(project_id=project_id, status=status, limit=limit)
    return [SessionResponse.model_validate(s) for s in sessions]


@router.get("/sessions/{session_id}", response_model=SessionDetailResponse)
def get_session(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    """会话详情（含条目）"""
    return SessionDetailResponse.model_validate(service.get_session(session_id))


@router.patch("/sessions/{session_id}", response_model=SessionResponse)
def update_session(
    session_id: str,
    req: SessionUpdate,
    background_tasks: BackgroundTasks,
    service: SessionService = Depends(get_session_service),
    notifier: ConnectionManager = Depends(get_notifier),
):
    """更新会话状态 / 备注"""
    session = service.update_session(session_id, req.model_dump(exclude_unset=True))
    _notify_session(background_tasks, notifier, session_id, "updated")
    return SessionResponse.model_validate(session)


@router.post("/sessions/{session_id}/items", response_model=ItemResponse, status_code=201)
def add_item(
    session_id: str,
    req: ItemCreate,
    background_tasks: BackgroundTasks,
    service: SessionService = Depends(get_session_service),
    notifier: ConnectionManager = Depends(get_notifier),
):
    """添加自定义条目"""
    item = service.add_custom_item(session_id, req.title, category=req.category)
    _notify_session(background_tasks, notifier, session_id, "item_added")
    return ItemResponse.model_validate(item)


@router.post("/sessions/{session_id}/report", response_model=BugReportResponse)
async def generate_report(
    session_id: str,
    db: Session = Depends(get_db),
    tracker: IssueTrackerClient = Depends(get_issue_tracker),
):
    """为失败条目创建缺陷卡片（按分类）"""
    return await BugReportService(db, tracker).generate_report(session_id)


# ============== Items ==============


@router.patch("/items/{item_id}", response_model=ItemResponse)
def update_item(
    item_id: int,
    req: ItemStatusUpdate,
    background_tasks: BackgroundTasks,
    service: SessionService = Depends(get_session_service),
    notifier: ConnectionManager = Depends(get_notifier),
):
    """设置条目状态"""
    item = service.set_item_status(item_id, req.status, req.error_description)
    _notify_session(background_tasks, notifier, item.session_id, "item_updated")
    return ItemResponse.model_validate(item)


@router.delete("/items/{item_id}", response_model=ItemRemovalResponse)
def delete_item(
    item_id: int,
    background_tasks: BackgroundTasks,
    service: SessionService = Depends(get_session_service),
    notifier: ConnectionManager = Depends(get_notifier),
):
    """删除条目（清单条目改为 skipped）"""
    result = service.remove_item(item_id)
    _notify_session(background_tasks, notifier, result["session_id"], "item_removed")
    return result
