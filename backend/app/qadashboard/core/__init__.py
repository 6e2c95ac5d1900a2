"""Core package"""
from qadashboard.core.config import Settings, settings
from qadashboard.core.exceptions import (
    ConflictError,
    DashboardError,
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    UpstreamError,
    ValidationError,
)
from qadashboard.core.registry import ProjectRegistry

__all__ = [
    "Settings",
    "settings",
    "ProjectRegistry",
    "DashboardError",
    "ForbiddenError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "UpstreamError",
    "PersistenceError",
]
