"""QA Dashboard - Exceptions

业务异常定义；main.py 中统一映射为 {"error": message} 响应
"""
from __future__ import annotations


class DashboardError(Exception):
    """业务异常基类"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DashboardError):
    """输入缺失或不合法"""
    status_code = 400


class ForbiddenError(DashboardError):
    """管理密钥不匹配"""
    status_code = 403


class NotFoundError(DashboardError):
    """项目 / 会话 / 条目不存在"""
    status_code = 404


class ConflictError(DashboardError):
    """资源状态冲突（例如同一项目已有运行中的测试）"""
    status_code = 409


class UpstreamError(DashboardError):
    """外部缺陷看板调用失败"""
    status_code = 502


class PersistenceError(DashboardError):
    """存储操作失败"""
    status_code = 500
