"""QA Dashboard - API Dependencies

请求处理器的公共依赖：项目配置、项目 ID 校验、管理密钥、服务实例
"""
from __future__ import annotations

import re
import secrets
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from qadashboard.core.config import settings
from qadashboard.core.exceptions import ForbiddenError, ValidationError
from qadashboard.core.registry import ProjectRegistry
from qadashboard.database.config import get_db
from qadashboard.services.checklist.service import ChecklistService
from qadashboard.services.run_service import RunService
from qadashboard.services.session_service import SessionService
from qadashboard.services.test_runner import PlaywrightRunner

PROJECT_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,100}$")


def is_valid_project_id(project_id: Optional[str]) -> bool:
    """项目 ID 只允许字母、数字、下划线和连字符，最长 100"""
    if not project_id or not isinstance(project_id, str):
        return False
    return PROJECT_ID_RE.fullmatch(project_id) is not None


def ensure_project_id(project_id: Optional[str]) -> str:
    if not is_valid_project_id(project_id):
        raise ValidationError("Invalid project ID")
    return project_id


def valid_project_id(project_id: str) -> str:
    """路径参数校验"""
    return ensure_project_id(project_id)


def get_registry(request: Request) -> ProjectRegistry:
    return request.app.state.registry


def get_test_runner(request: Request) -> PlaywrightRunner:
    return request.app.state.test_runner


def get_checklist_service(registry: ProjectRegistry = Depends(get_registry)) -> ChecklistService:
    return ChecklistService(registry)


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    return SessionService(db)


def get_run_service(
    db: Session = Depends(get_db),
    registry: ProjectRegistry = Depends(get_registry),
) -> RunService:
    return RunService(db, retention=registry.run_retention)


def require_migration_key(x_migration_key: Optional[str] = Header(default=None)) -> None:
    """管理端点：校验 X-Migration-Key"""
    expected = settings.MIGRATION_KEY
    if not expected or not x_migration_key or not secrets.compare_digest(x_migration_key, expected):
        raise ForbiddenError("Unauthorized")
