"""QA Dashboard - Checklists

核心组件：
- parser: markdown 清单解析
- service: 按项目查找清单文件
"""

from qadashboard.services.checklist.parser import (
    ChecklistDocument,
    ChecklistItem,
    parse_checklist,
)
from qadashboard.services.checklist.service import ChecklistService

__all__ = [
    "ChecklistDocument",
    "ChecklistItem",
    "ChecklistService",
    "parse_checklist",
]
