"""QA Dashboard - WebSocket API Routes

看板实时推送端点
"""
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from qadashboard.services.notifier import manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


@router.websocket("/ws")
async def dashboard_ws(websocket: WebSocket):
    """
    看板 WebSocket 端点

    服务端单向推送事件（results:uploaded / session:updated / tests:*）；
    客户端发送的消息只用于保活，"ping" 回复 "pong"
    """
    await manager.connect(websocket)

    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.info("WebSocket 客户端断开")
    finally:
        await manager.disconnect(websocket)
