"""QA Dashboard - Run History Service

自动化测试运行记录：写入、保留窗口裁剪、读取与变更轮询。
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import distinct, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from qadashboard.core.exceptions import NotFoundError, PersistenceError, ValidationError
from qadashboard.database.models import Project, TestRun, utcnow

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "ci-upload"
STAT_FIELDS = ("total", "passed", "failed", "skipped", "duration")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite 返回的时间不带时区，统一按 UTC 处理"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_stats(stats: Optional[dict[str, Any]]) -> dict[str, Any]:
    """缺失的统计字段补 0"""
    if not isinstance(stats, dict):
        raise ValidationError("Invalid stats object")
    return {key: stats.get(key) or 0 for key in STAT_FIELDS}


def exit_code_for(stats: dict[str, Any]) -> int:
    return 1 if (stats.get("failed") or 0) > 0 else 0


def run_status(failed: int, passed: int) -> str:
    """看板上的项目状态"""
    if failed > 0:
        return "failed"
    if passed > 0:
        return "passed"
    return "unknown"


class RunService:
    """自动化运行记录服务"""

    def __init__(self, db: Session, retention: int = 50):
        self.db = db
        self.retention = retention

    # ============================================================
    # 写入
    # ============================================================

    def record_run(
        self,
        project_id: str,
        stats: Optional[dict[str, Any]],
        suites: Optional[list] = None,
        errors: Optional[list] = None,
        source: Optional[str] = None,
    ) -> TestRun:
        """写入一次运行，并裁剪该项目超出保留窗口的旧记录"""
        stats = normalize_stats(stats)

        self.ensure_project(project_id)

        run = TestRun(
            run_id=self._next_run_id(),
            project_id=project_id,
            timestamp=utcnow(),
            stats_total=stats["total"],
            stats_passed=stats["passed"],
            stats_failed=stats["failed"],
            stats_skipped=stats["skipped"],
            stats_duration=stats["duration"],
            source=source or DEFAULT_SOURCE,
            exit_code=exit_code_for(stats),
            suites=suites or [],
            errors=errors or [],
        )
        self.db.add(run)

        try:
            self.db.flush()
            removed = self._enforce_retention(project_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"写入运行记录失败: {e}")
            raise PersistenceError("Failed to upload results") from e

        self.db.refresh(run)
        logger.info(
            f"Results uploaded for {project_id}: {run.stats_passed}/{run.stats_total} passed"
            + (f" (pruned {removed})" if removed else "")
        )
        return run

    def ensure_project(self, project_id: str) -> Project:
        """项目不存在时创建占位记录（名称 = ID）"""
        project = self.db.get(Project, project_id)
        if project is None:
            project = Project(id=project_id, name=project_id)
            self.db.add(project)
        return project

    def _next_run_id(self) -> str:
        candidate = int(time.time() * 1000)
        while self.db.query(TestRun.id).filter(TestRun.run_id == str(candidate)).first():
            candidate += 1
        return str(candidate)

    def _enforce_retention(self, project_id: str) -> int:
        keep_ids = [
            row.id
            for row in (
                self.db.query(TestRun.id)
                .filter(TestRun.project_id == project_id)
                .order_by(TestRun.timestamp.desc(), TestRun.id.desc())
                .limit(self.retention)
            )
        ]
        return (
            self.db.query(TestRun)
            .filter(TestRun.project_id == project_id, TestRun.id.notin_(keep_ids))
            .delete(synchronize_session=False)
        )

    # ============================================================
    # 读取
    # ============================================================

    def list_projects(self) -> list[Project]:
        return self.db.query(Project).order_by(Project.name).all()

    def get_project(self, project_id: str) -> Project:
        project = self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    def latest_run(self, project_id: str) -> Optional[TestRun]:
        return (
            self.db.query(TestRun)
            .filter(TestRun.project_id == project_id)
            .order_by(TestRun.timestamp.desc(), TestRun.id.desc())
            .first()
        )

    def results_summary(self) -> dict[str, dict[str, Any]]:
        """每个项目的最新一次运行；没有运行记录的项目也列出"""
        names = {p.id: p.name for p in self.db.query(Project).all()}
        run_projects = {row[0] for row in self.db.query(distinct(TestRun.project_id)).all()}

        summary: dict[str, dict[str, Any]] = {}
        for project_id in sorted(run_projects | set(names)):
            run = self.latest_run(project_id) if project_id in run_projects else None
            if run is None:
                summary[project_id] = {
                    "name": names.get(project_id, project_id),
                    "last_run": None,
                    "passed": 0,
                    "failed": 0,
                    "skipped": 0,
                    "total": 0,
                    "status": "unknown",
                }
                continue
            summary[project_id] = {
                "name": names.get(project_id, project_id),
                "last_run": run,
                "passed": run.stats_passed,
                "failed": run.stats_failed,
                "skipped": run.stats_skipped,
                "total": run.stats_total,
                "status": run_status(run.stats_failed, run.stats_passed),
            }
        return summary

    def project_results(self, project_id: str, limit: int = 20) -> list[TestRun]:
        """项目最近的运行（含 suites / errors）"""
        self.get_project(project_id)
        return self._recent_runs(project_id, limit)

    def history(self, project_id: str, limit: Optional[int] = None) -> list[TestRun]:
        """项目运行历史（默认取整个保留窗口）"""
        self.get_project(project_id)
        return self._recent_runs(project_id, limit or self.retention)

    def _recent_runs(self, project_id: str, limit: int) -> list[TestRun]:
        return (
            self.db.query(TestRun)
            .filter(TestRun.project_id == project_id)
            .order_by(TestRun.timestamp.desc(), TestRun.id.desc())
            .limit(limit)
            .all()
        )

    # ============================================================
    # 轮询
    # ============================================================

    def latest_timestamp(self) -> Optional[datetime]:
        return as_utc(self.db.query(func.max(TestRun.timestamp)).scalar())

    def poll(self, since: Optional[datetime] = None) -> dict[str, Any]:
        """变更检测：只有提供 since 且有更新的运行时 has_updates 才为 True"""
        latest = self.latest_timestamp()
        has_updates = bool(since and latest and latest > as_utc(since))
        return {"latest": latest, "has_updates": has_updates}
