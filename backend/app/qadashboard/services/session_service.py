"""QA Dashboard - Manual Session Service

手工测试会话与条目的状态维护。

会话计数器（total/passed/failed/skipped）是权威值：
每次条目变更都在同一事务内对会话行做一次增量更新（col = col + delta）。

条目写入是 compare-and-set：UPDATE ... WHERE id = :id AND status = :old，
只有命中一行时才应用计数器增量，否则回滚后重新读取再试。
SQLite 不支持 SELECT ... FOR UPDATE，行锁只在 PostgreSQL 等数据库上生效。
"""
from __future__ import annotations

import logging
import secrets
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from qadashboard.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from qadashboard.database.models import (
    ItemStatus,
    ManualTestItem,
    ManualTestSession,
    SessionStatus,
    utcnow,
)
from qadashboard.services.checklist.parser import ChecklistDocument
from qadashboard.services.scoring import TOTAL_COUNTER, removal_delta, transition_delta

logger = logging.getLogger(__name__)

CUSTOM_CATEGORY = "Custom"

# 并发修改同一条目时的重试次数
MAX_WRITE_ATTEMPTS = 5


def generate_session_id() -> str:
    return "session-" + secrets.token_hex(8)


def _parse_item_status(value: Any) -> ItemStatus:
    try:
        return ItemStatus(value)
    except ValueError:
        raise ValidationError("Invalid status")


def _parse_session_status(value: Any) -> SessionStatus:
    try:
        return SessionStatus(value)
    except ValueError:
        raise ValidationError("Invalid status")


class SessionService:
    """手工测试会话服务"""

    def __init__(self, db: Session):
        self.db = db

    # ============================================================
    # 会话
    # ============================================================

    def create_session(
        self,
        project_id: str,
        checklist: ChecklistDocument,
        created_by: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ManualTestSession:
        """从清单创建会话：每个清单条目生成一条 pending 条目"""
        session = ManualTestSession(
            session_id=generate_session_id(),
            project_id=project_id,
            status=SessionStatus.IN_PROGRESS,
            started_at=utcnow(),
            total_items=len(checklist.items),
            passed_items=0,
            failed_items=0,
            skipped_items=0,
            created_by=created_by,
            notes=notes,
        )
        for item in checklist.items:
            session.items.append(ManualTestItem(
                item_index=item.index,
                category=item.category,
                title=item.title,
                status=ItemStatus.PENDING,
                is_custom=False,
            ))

        self.db.add(session)
        self._commit("创建会话失败")
        self.db.refresh(session)

        logger.info(f"手工测试会话已创建: {session.session_id} project={project_id} items={session.total_items}")
        return session

    def list_sessions(
        self,
        project_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
    ) -> list[ManualTestSession]:
        """会话列表（按开始时间倒序）"""
        query = self.db.query(ManualTestSession)
        if project_id:
            query = query.filter(ManualTestSession.project_id == project_id)
        if status:
            query = query.filter(ManualTestSession.status == _parse_session_status(status))
        return (
            query.order_by(ManualTestSession.started_at.desc(), ManualTestSession.id.desc())
            .limit(limit)
            .all()
        )

    def get_session(self, session_id: str) -> ManualTestSession:
        session = (
            self.db.query(ManualTestSession)
            .filter(ManualTestSession.session_id == session_id)
            .first()
        )
        if not session:
            raise NotFoundError("Session not found")
        return session

    def update_session(self, session_id: str, changes: dict[str, Any]) -> ManualTestSession:
        """更新会话状态和/或备注

        Args:
            session_id: 会话 ID
            changes: 请求中实际提供的字段（status / notes）

        Raises:
            ValidationError: 没有可更新字段、状态不合法、或试图离开终态
            NotFoundError: 会话不存在
        """
        new_status = None
        if changes.get("status"):
            new_status = _parse_session_status(changes["status"])
        has_notes = "notes" in changes

        if new_status is None and not has_notes:
            raise ValidationError("No updates provided")

        session = self._lock_session(session_id)

        if new_status is not None and new_status != session.status:
            if SessionStatus(session.status).is_terminal():
                raise ValidationError(f"Session is already {SessionStatus(session.status).value}")
            session.status = new_status
            if new_status.is_terminal():
                session.completed_at = utcnow()

        if has_notes:
            session.notes = changes["notes"]

        self._commit("更新会话失败")
        self.db.refresh(session)
        return session

    # ============================================================
    # 条目
    # ============================================================

    def set_item_status(
        self,
        item_id: int,
        status: Any,
        error_description: Optional[str] = None,
    ) -> ManualTestItem:
        """设置条目状态，并按状态转移表调整会话计数器

        failed 必须附带错误描述；其它状态会清空错误描述。
        每次调用都会刷新 tested_at，即使状态没有变化。
        """
        new_status = _parse_item_status(status)
        if new_status == ItemStatus.FAILED and not error_description:
            raise ValidationError("Error description required for failed items")

        for attempt in range(MAX_WRITE_ATTEMPTS):
            item = self._lock_item(item_id)
            session_id = item.session_id
            self._lock_session(session_id)

            old_status = ItemStatus(item.status)
            matched = self._guarded_items(item_id, old_status).update(
                {
                    ManualTestItem.status: new_status,
                    ManualTestItem.error_description: (
                        error_description if new_status == ItemStatus.FAILED else None
                    ),
                    ManualTestItem.tested_at: utcnow(),
                },
                synchronize_session=False,
            )
            if matched == 1:
                self._apply_counters(session_id, transition_delta(old_status, new_status))
                self._commit("更新条目失败")
                return self.db.get(ManualTestItem, item_id)
            self._retry(item_id, attempt)

        raise ConflictError("Item was modified concurrently")

    def add_custom_item(
        self,
        session_id: str,
        title: Optional[str],
        category: Optional[str] = None,
    ) -> ManualTestItem:
        """向会话追加自定义条目（index = 当前最大 index + 1）"""
        if not title or not isinstance(title, str) or not title.strip():
            raise ValidationError("Title is required")

        self._lock_session(session_id)

        max_index = (
            self.db.query(func.max(ManualTestItem.item_index))
            .filter(ManualTestItem.session_id == session_id)
            .scalar()
        )
        item = ManualTestItem(
            session_id=session_id,
            item_index=0 if max_index is None else max_index + 1,
            category=category or CUSTOM_CATEGORY,
            title=title.strip(),
            status=ItemStatus.PENDING,
            is_custom=True,
        )
        self.db.add(item)
        self._apply_counters(session_id, {TOTAL_COUNTER: 1})
        self._commit("添加条目失败")
        self.db.refresh(item)
        return item

    def remove_item(self, item_id: int) -> dict[str, Any]:
        """删除条目

        - 自定义条目：物理删除
        - 清单条目：保留历史，改为 skipped
        """
        for attempt in range(MAX_WRITE_ATTEMPTS):
            item = self._lock_item(item_id)
            session_id = item.session_id
            self._lock_session(session_id)

            old_status = ItemStatus(item.status)
            guarded = self._guarded_items(item_id, old_status)
            if item.is_custom:
                matched = guarded.delete(synchronize_session=False)
                result = {"deleted": True, "session_id": session_id}
            else:
                matched = guarded.update(
                    {
                        ManualTestItem.status: ItemStatus.SKIPPED,
                        ManualTestItem.error_description: None,
                        ManualTestItem.tested_at: utcnow(),
                    },
                    synchronize_session=False,
                )
                result = {"skipped": True, "session_id": session_id}

            if matched == 1:
                self._apply_counters(session_id, removal_delta(old_status, item.is_custom))
                self._commit("删除条目失败")
                return result
            self._retry(item_id, attempt)

        raise ConflictError("Item was modified concurrently")

    # ============================================================
    # 内部方法
    # ============================================================

    def _lock_session(self, session_id: str) -> ManualTestSession:
        session = (
            self.db.query(ManualTestSession)
            .filter(ManualTestSession.session_id == session_id)
            .with_for_update()
            .first()
        )
        if not session:
            raise NotFoundError("Session not found")
        return session

    def _lock_item(self, item_id: int) -> ManualTestItem:
        item = (
            self.db.query(ManualTestItem)
            .filter(ManualTestItem.id == item_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not item:
            raise NotFoundError("Item not found")
        return item

    def _guarded_items(self, item_id: int, expected: ItemStatus):
        """只匹配状态仍为 expected 的条目"""
        return self.db.query(ManualTestItem).filter(
            ManualTestItem.id == item_id,
            ManualTestItem.status == expected,
        )

    def _retry(self, item_id: int, attempt: int) -> None:
        self.db.rollback()
        logger.info(f"条目 {item_id} 被并发修改，重新读取 (attempt={attempt + 1})")

    def _apply_counters(self, session_id: str, delta: dict[str, int]) -> None:
        """以单条 UPDATE 应用计数器增量"""
        if not delta:
            return
        values = {
            getattr(ManualTestSession, column): getattr(ManualTestSession, column) + value
            for column, value in delta.items()
        }
        self.db.query(ManualTestSession).filter(
            ManualTestSession.session_id == session_id
        ).update(values, synchronize_session=False)

    def _commit(self, message: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"{message}: {e}")
            raise PersistenceError(message) from e
