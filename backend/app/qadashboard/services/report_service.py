"""QA Dashboard - Bug Report Service

把会话中的失败条目按分类汇总成报告，并在缺陷看板上创建卡片。

每个分类独立提交：某个分类失败只记录错误，不影响其它分类。
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from qadashboard.core.exceptions import NotFoundError, UpstreamError
from qadashboard.database.models import ItemStatus, ManualTestItem, ManualTestSession
from qadashboard.services.issue_tracker import IssueTrackerClient
from qadashboard.services.run_service import as_utc

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"


def card_title(category: str, fail_count: int) -> str:
    suffix = "s" if fail_count > 1 else ""
    return f"BUG: {category} - {fail_count} test failure{suffix}"


def render_report(
    session: ManualTestSession,
    category: str,
    items: list[ManualTestItem],
    totals: dict[str, int],
) -> str:
    """渲染单个分类的 markdown 报告"""
    started_at = as_utc(session.started_at)
    lines = [
        "## Manual Test Failures",
        "",
        f"**Project:** {session.project_id}",
        f"**Category:** {category}",
        f"**Session:** {session.session_id}",
        f"**Tested:** {started_at.isoformat() if started_at else '-'}",
        "",
        "---",
        "",
        "### Failed Tests",
        "",
    ]
    for item in items:
        lines.append(f"#### ✗ {item.title}")
        lines.append(f"**Error:** {item.error_description}")
        lines.append("")
    lines.extend([
        "---",
        "",
        "### Session Summary",
        f"- Total in category: {totals['total']}",
        f"- Passed: {totals['passed']}",
        f"- Failed: {totals['failed']}",
    ])
    return "\n".join(lines) + "\n"


class BugReportService:
    """缺陷报告服务"""

    def __init__(self, db: Session, tracker: IssueTrackerClient):
        self.db = db
        self.tracker = tracker

    async def generate_report(self, session_id: str) -> dict[str, Any]:
        """为会话的失败条目生成看板卡片

        Returns:
            {"message", "cards_created", "cards"}；每个分类一条 card 记录，
            成功时带 card_id / card_url，失败时带 error
        """
        session = (
            self.db.query(ManualTestSession)
            .filter(ManualTestSession.session_id == session_id)
            .first()
        )
        if not session:
            raise NotFoundError("Session not found")

        grouped = self.failed_items_by_category(session_id)
        if not grouped:
            return {"message": "No failed items", "cards_created": 0, "cards": []}

        totals = self.category_totals(session_id)
        cards: list[dict[str, Any]] = []

        for category, items in grouped.items():
            fail_count = len(items)
            category_totals = totals.get(
                category, {"total": fail_count, "passed": 0, "failed": fail_count}
            )
            description = render_report(session, category, items, category_totals)

            try:
                card_id = await self.tracker.create_card(
                    title=card_title(category, fail_count),
                    description=description,
                    project_id=session.project_id,
                )
            except UpstreamError as e:
                logger.error(f"分类 {category} 创建卡片失败: {e.message}")
                cards.append({"category": category, "fail_count": fail_count, "error": e.message})
                continue

            card = {
                "category": category,
                "fail_count": fail_count,
                "card_id": card_id,
                "card_url": self.tracker.card_url(card_id),
            }
            try:
                self._link_card([item.id for item in items], card_id)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"分类 {category} 卡片 {card_id} 已创建，但关联条目失败: {e}")
                card["error"] = "Card created but not linked to items"
            cards.append(card)

        created = sum(1 for card in cards if card.get("card_id"))
        logger.info(f"会话 {session_id} 缺陷报告: 创建 {created}/{len(cards)} 张卡片")
        return {
            "message": f"Created {created} bug cards",
            "cards_created": created,
            "cards": cards,
        }

    def failed_items_by_category(self, session_id: str) -> dict[str, list[ManualTestItem]]:
        failed = (
            self.db.query(ManualTestItem)
            .filter(
                ManualTestItem.session_id == session_id,
                ManualTestItem.status == ItemStatus.FAILED,
            )
            .order_by(ManualTestItem.category, ManualTestItem.item_index)
            .all()
        )
        grouped: dict[str, list[ManualTestItem]] = {}
        for item in failed:
            grouped.setdefault(item.category or UNCATEGORIZED, []).append(item)
        return grouped

    def category_totals(self, session_id: str) -> dict[str, dict[str, int]]:
        """每个分类的 total / passed / failed（统计全部条目，不只是失败的）"""
        rows = (
            self.db.query(
                ManualTestItem.category,
                func.count(ManualTestItem.id),
                func.sum(case((ManualTestItem.status == ItemStatus.PASSED, 1), else_=0)),
                func.sum(case((ManualTestItem.status == ItemStatus.FAILED, 1), else_=0)),
            )
            .filter(ManualTestItem.session_id == session_id)
            .group_by(ManualTestItem.category)
            .all()
        )
        totals: dict[str, dict[str, int]] = {}
        for category, total, passed, failed in rows:
            key = category or UNCATEGORIZED
            current = totals.setdefault(key, {"total": 0, "passed": 0, "failed": 0})
            current["total"] += int(total or 0)
            current["passed"] += int(passed or 0)
            current["failed"] += int(failed or 0)
        return totals

    def _link_card(self, item_ids: list[int], card_id: str) -> None:
        self.db.query(ManualTestItem).filter(ManualTestItem.id.in_(item_ids)).update(
            {ManualTestItem.tracker_card_id: card_id}, synchronize_session=False
        )
        self.db.commit()
