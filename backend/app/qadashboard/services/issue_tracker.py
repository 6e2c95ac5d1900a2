"""QA Dashboard - Issue Tracker Client

外部缺陷看板（Kanban）客户端：为失败的手工测试创建 bug 卡片
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from qadashboard.core.config import settings
from qadashboard.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class TrackerConfig:
    """看板配置"""
    api_url: str
    card_url: str
    timeout: float = 10.0
    column_id: str = "backlog"
    priority: str = "high"
    card_type: str = "bug"


class IssueTrackerClient:
    """看板客户端"""

    def __init__(
        self,
        config: TrackerConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        # 测试中注入 httpx.MockTransport
        self._transport = transport

    def card_url(self, card_id: str) -> str:
        return f"{self.config.card_url}{card_id}"

    async def create_card(self, title: str, description: str, project_id: str) -> str:
        """创建卡片并返回卡片 ID

        Raises:
            UpstreamError: 非 2xx 响应、网络错误或超时
        """
        payload = {
            "title": title,
            "description": description,
            "projectId": project_id,
            "columnId": self.config.column_id,
            "priority": self.config.priority,
            "type": self.config.card_type,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    f"{self.config.api_url}/cards",
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as e:
            logger.warning(f"看板 API 超时: {e}")
            raise UpstreamError("Tracker request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"看板 API 调用失败: {e}")
            raise UpstreamError(str(e) or "Tracker request failed") from e

        if response.status_code >= 400:
            logger.error(f"创建看板卡片失败: {response.status_code} {response.text}")
            raise UpstreamError("Failed to create card")

        try:
            data: Any = response.json()
        except ValueError as e:
            raise UpstreamError("Tracker returned invalid JSON") from e
        card_id = data.get("id") if isinstance(data, dict) else None
        if card_id is None:
            raise UpstreamError("Tracker response missing card id")
        return str(card_id)


def get_issue_tracker() -> IssueTrackerClient:
    """依赖注入入口"""
    return IssueTrackerClient(TrackerConfig(
        api_url=settings.TRACKER_API_URL.rstrip("/"),
        card_url=settings.TRACKER_CARD_URL,
        timeout=settings.TRACKER_TIMEOUT,
    ))
