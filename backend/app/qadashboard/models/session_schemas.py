"""QA Dashboard - Manual Session Schemas

手工测试会话 / 条目相关的 Pydantic 数据模型
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from qadashboard.database.models import ItemStatus, SessionStatus


# ============================================================
# Request Schemas
# ============================================================

class SessionCreate(BaseModel):
    """创建会话请求"""
    project_id: Optional[str] = Field(None, description="项目 ID")
    created_by: Optional[str] = Field(None, max_length=100, description="测试人")
    notes: Optional[str] = None


class SessionUpdate(BaseModel):
    """更新会话请求（至少提供一个字段）"""
    status: Optional[str] = Field(None, description="in_progress / completed / cancelled")
    notes: Optional[str] = None


class ItemCreate(BaseModel):
    """添加自定义条目请求"""
    title: Optional[str] = None
    category: Optional[str] = Field(None, max_length=255)


class ItemStatusUpdate(BaseModel):
    """设置条目状态请求"""
    status: Optional[str] = Field(None, description="pending / passed / failed / skipped")
    error_description: Optional[str] = Field(None, description="failed 时必填")


# ============================================================
# Response Schemas
# ============================================================

class ItemResponse(BaseModel):
    """条目响应"""
    id: int
    index: int = Field(..., validation_alias="item_index")
    category: Optional[str]
    title: str
    status: ItemStatus
    error_description: Optional[str] = None
    is_custom: bool
    tested_at: Optional[datetime] = None
    tracker_card_id: Optional[str] = None

    class Config:
        from_attributes = True
        populate_by_name = True


class SessionResponse(BaseModel):
    """会话响应"""
    session_id: str
    project_id: str
    status: SessionStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    total_items: int
    passed_items: int
    failed_items: int
    skipped_items: int
    created_by: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class SessionDetailResponse(SessionResponse):
    """会话详情（含条目）"""
    items: list[ItemResponse] = Field(default_factory=list)


class ItemRemovalResponse(BaseModel):
    """删除条目响应：自定义条目 deleted，清单条目 skipped"""
    session_id: str
    deleted: bool = False
    skipped: bool = False


class BugCard(BaseModel):
    """单个分类的卡片结果"""
    category: str
    fail_count: int
    card_id: Optional[str] = None
    card_url: Optional[str] = None
    error: Optional[str] = None


class BugReportResponse(BaseModel):
    """缺陷报告响应"""
    message: str
    cards_created: int
    cards: list[BugCard] = Field(default_factory=list)
