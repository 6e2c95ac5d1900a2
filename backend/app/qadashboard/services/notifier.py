"""QA Dashboard - Live Notifier

看板 WebSocket 连接管理与广播（至多一次，无补发）
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)

# 事件类型
RESULTS_UPLOADED = "results:uploaded"
SESSION_UPDATED = "session:updated"
TESTS_STARTED = "tests:started"
TESTS_COMPLETED = "tests:completed"
TESTS_ERROR = "tests:error"


class ConnectionManager:
    """WebSocket 连接管理器"""

    def __init__(self):
        self._connections: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def active_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket):
        """建立连接"""
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)
        logger.info(f"WebSocket 连接建立: clients={len(self._connections)}")

    async def disconnect(self, websocket: WebSocket):
        """断开连接"""
        async with self._lock:
            self._connections.discard(websocket)
        logger.info(f"WebSocket 连接断开: clients={len(self._connections)}")

    async def broadcast(self, message: dict[str, Any]):
        """向所有连接广播消息，发送失败的连接直接移除"""
        async with self._lock:
            connections = self._connections.copy()

        stale = []
        for websocket in connections:
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.warning(f"WebSocket 发送失败: {e}")
                stale.append(websocket)

        if stale:
            async with self._lock:
                for websocket in stale:
                    self._connections.discard(websocket)


def make_event(event_type: str, data: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    return {
        "type": event_type,
        "data": data or {},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# 全局连接管理器
manager = ConnectionManager()


def get_notifier() -> ConnectionManager:
    """依赖注入入口"""
    return manager
