"""QA Dashboard - Checklist Service

按项目查找并解析清单文件
"""
from __future__ import annotations

import logging

from qadashboard.core.exceptions import NotFoundError
from qadashboard.core.registry import ProjectRegistry
from qadashboard.services.checklist.parser import (
    ChecklistDocument,
    extract_title,
    parse_checklist,
)

logger = logging.getLogger(__name__)


class ChecklistService:
    """清单服务"""

    def __init__(self, registry: ProjectRegistry):
        self.registry = registry

    def list_checklists(self) -> list[dict]:
        """列出清单目录下所有清单（README.md 除外）"""
        directory = self.registry.checklists_dir
        if not directory.is_dir():
            logger.warning(f"清单目录不存在: {directory}")
            return []

        checklists = []
        for path in sorted(directory.glob("*.md")):
            if path.name == "README.md":
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"跳过无法读取的清单 {path.name}: {e}")
                continue
            parsed = parse_checklist(content)
            checklists.append({
                "project_id": self.registry.project_for_file(path.name),
                "name": extract_title(content) or path.stem,
                "filename": path.name,
                "item_count": len(parsed.items),
                "category_count": len(parsed.categories),
            })
        return checklists

    def get_checklist(self, project_id: str) -> ChecklistDocument:
        """获取项目的清单

        Raises:
            NotFoundError: 没有映射或文件不存在
        """
        path = self.registry.checklist_path(project_id)
        if not path.is_file():
            raise NotFoundError("Checklist not found for project")
        return parse_checklist(path.read_text(encoding="utf-8"))
