"""QA Dashboard - Database Models

SQLAlchemy 数据模型定义
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    JSON,
)
from sqlalchemy.orm import relationship

from qadashboard.database.config import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# 枚举类型
# ============================================================

class SessionStatus(str, PyEnum):
    """手工测试会话状态"""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def terminal_states(cls) -> set["SessionStatus"]:
        """终态集合"""
        return {cls.COMPLETED, cls.CANCELLED}

    def is_terminal(self) -> bool:
        return self in self.terminal_states()


class ItemStatus(str, PyEnum):
    """测试条目状态"""
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


# ============================================================
# 数据模型
# ============================================================

class Project(Base):
    """被测项目"""
    __tablename__ = "projects"

    id = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False)
    base_url = Column(String(512), nullable=True)
    port = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class TestRun(Base):
    """自动化测试运行摘要"""
    __tablename__ = "test_runs"
    __test__ = False  # 避免 pytest 收集

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(50), nullable=False, unique=True)  # 提交时间（毫秒）
    project_id = Column(String(100), nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    stats_total = Column(Integer, nullable=False, default=0)
    stats_passed = Column(Integer, nullable=False, default=0)
    stats_failed = Column(Integer, nullable=False, default=0)
    stats_skipped = Column(Integer, nullable=False, default=0)
    stats_duration = Column(Float, nullable=False, default=0)
    source = Column(String(50), nullable=False, default="ci-upload")
    exit_code = Column(Integer, nullable=False, default=0)
    suites = Column(JSON, nullable=False, default=list)
    errors = Column(JSON, nullable=False, default=list)


class ManualTestSession(Base):
    """手工测试会话（计数器为权威值）"""
    __tablename__ = "manual_test_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(50), nullable=False, unique=True)
    project_id = Column(String(100), nullable=False, index=True)
    status = Column(Enum(SessionStatus), nullable=False, default=SessionStatus.IN_PROGRESS, index=True)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    total_items = Column(Integer, nullable=False, default=0)
    passed_items = Column(Integer, nullable=False, default=0)
    failed_items = Column(Integer, nullable=False, default=0)
    skipped_items = Column(Integer, nullable=False, default=0)
    created_by = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    # 关联
    items = relationship(
        "ManualTestItem",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ManualTestItem.item_index",
    )


class ManualTestItem(Base):
    """手工测试条目"""
    __tablename__ = "manual_test_items"
    __table_args__ = (
        UniqueConstraint("session_id", "item_index", name="uq_manual_items_session_index"),
        Index("idx_manual_items_category", "session_id", "category"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(
        String(50),
        ForeignKey("manual_test_sessions.session_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_index = Column(Integer, nullable=False)
    category = Column(String(255), nullable=True)
    title = Column(Text, nullable=False)
    status = Column(Enum(ItemStatus), nullable=False, default=ItemStatus.PENDING)
    error_description = Column(Text, nullable=True)
    is_custom = Column(Boolean, nullable=False, default=False)
    tested_at = Column(DateTime(timezone=True), nullable=True)
    tracker_card_id = Column(String(50), nullable=True)  # 缺陷看板卡片 ID

    # 关联
    session = relationship("ManualTestSession", back_populates="items")
