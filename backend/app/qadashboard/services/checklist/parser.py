"""QA Dashboard - Checklist Parser

把 markdown 测试清单解析为有序的分类与待测条目。

支持格式：
- ``## 分类``：开启新分类（结构性章节被忽略，见 SKIP_SECTIONS）
- ``### 子分类``：挂在当前分类下，条目分类记为 ``分类 > 子分类``
- ``- [ ] 条目``：一条待测条目；``- [x]`` 等已勾选或格式不符的行被忽略
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

# 非测试内容的章节（大小写不敏感的子串匹配）
SKIP_SECTIONS = (
    "API Endpoint Tests",
    "Playwright Test Outline",
    "Test Data Requirements",
    "Known Issues",
    "Skip Conditions",
    "Quick Reference",
    "Smoke Test Commands",
    "Test Categories",
    "Running Playwright Tests",
    "Verification Plan",
)

H2_RE = re.compile(r"^## (.+)$")
H3_RE = re.compile(r"^### (.+)$")
ITEM_RE = re.compile(r"^- \[ \] (.+)$")
TITLE_RE = re.compile(r"^# (.+?)( - E2E Test Checklist)?\s*$", re.MULTILINE)


@dataclass(frozen=True)
class ChecklistItem:
    """清单条目"""
    index: int
    category: str
    title: str

    def to_dict(self) -> dict:
        return {"index": self.index, "category": self.category, "title": self.title}


@dataclass(frozen=True)
class ChecklistDocument:
    """解析结果"""
    categories: list[str] = field(default_factory=list)
    items: list[ChecklistItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "categories": list(self.categories),
            "items": [item.to_dict() for item in self.items],
        }


def should_skip_section(name: str) -> bool:
    """是否为结构性章节（不包含测试条目）"""
    lowered = name.lower()
    return any(skip.lower() in lowered for skip in SKIP_SECTIONS)


def parse_checklist(content: str) -> ChecklistDocument:
    """解析 markdown 清单

    Args:
        content: markdown 文本

    Returns:
        ChecklistDocument: 分类按首次出现顺序去重，条目按文档顺序编号（从 0 开始）
    """
    categories: list[str] = []
    items: list[ChecklistItem] = []

    current_category: Optional[str] = None
    current_subcategory: Optional[str] = None

    for line in content.split("\n"):
        h2 = H2_RE.match(line)
        if h2:
            current_category = h2.group(1).strip()
            current_subcategory = None

            if should_skip_section(current_category):
                current_category = None
                continue

            if current_category not in categories:
                categories.append(current_category)
            continue

        h3 = H3_RE.match(line)
        if h3 and current_category:
            current_subcategory = h3.group(1).strip()
            continue

        item = ITEM_RE.match(line)
        if item and current_category:
            full_category = (
                f"{current_category} > {current_subcategory}"
                if current_subcategory
                else current_category
            )
            items.append(ChecklistItem(
                index=len(items),
                category=full_category,
                title=item.group(1).strip(),
            ))

    return ChecklistDocument(categories=categories, items=items)


def extract_title(content: str) -> Optional[str]:
    """取第一个一级标题作为清单名称（去掉 " - E2E Test Checklist" 后缀）"""
    match = TITLE_RE.search(content)
    return match.group(1).strip() if match else None
