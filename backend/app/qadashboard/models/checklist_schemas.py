"""QA Dashboard - Checklist Schemas

测试清单相关的 Pydantic 数据模型
"""
from __future__ import annotations

from pydantic import BaseModel, Field


class ChecklistItemResponse(BaseModel):
    """清单条目"""
    index: int = Field(..., ge=0, description="文档内序号（从 0 开始）")
    category: str = Field(..., description="分类（子分类形如 'A > B'）")
    title: str

    class Config:
        from_attributes = True


class ChecklistResponse(BaseModel):
    """解析后的清单"""
    categories: list[str] = Field(default_factory=list)
    items: list[ChecklistItemResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ChecklistSummary(BaseModel):
    """清单列表条目"""
    project_id: str
    name: str
    filename: str
    item_count: int
    category_count: int
