"""QA Dashboard - Run Schemas

自动化运行记录相关的 Pydantic 数据模型
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


# ============================================================
# Request Schemas
# ============================================================

class RunStats(BaseModel):
    """运行统计"""
    total: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    duration: float = Field(default=0, ge=0, description="耗时（毫秒）")


class RunUpload(BaseModel):
    """上传运行结果请求"""
    stats: Optional[RunStats] = None
    suites: Optional[list[Any]] = None
    errors: Optional[list[Any]] = None
    source: Optional[str] = Field(None, max_length=50)


class RunTrigger(BaseModel):
    """后台执行请求"""
    grep: Optional[str] = None


# ============================================================
# Response Schemas
# ============================================================

class RunResponse(BaseModel):
    """运行记录"""
    id: str
    timestamp: datetime
    stats: RunStats
    source: str
    exit_code: int

    @classmethod
    def from_run(cls, run) -> "RunResponse":
        return cls(
            id=run.run_id,
            timestamp=run.timestamp,
            stats=RunStats(
                total=run.stats_total,
                passed=run.stats_passed,
                failed=run.stats_failed,
                skipped=run.stats_skipped,
                duration=run.stats_duration,
            ),
            source=run.source,
            exit_code=run.exit_code,
        )


class RunDetailResponse(RunResponse):
    """运行记录（含 suites / errors）"""
    suites: list[Any] = Field(default_factory=list)
    errors: list[Any] = Field(default_factory=list)

    @classmethod
    def from_run(cls, run) -> "RunDetailResponse":
        base = RunResponse.from_run(run)
        return cls(**base.model_dump(), suites=run.suites or [], errors=run.errors or [])


class UploadResponse(BaseModel):
    """上传响应"""
    message: str
    run: RunDetailResponse


class ProjectResultsResponse(BaseModel):
    """项目最近运行"""
    runs: list[RunDetailResponse] = Field(default_factory=list)
    last_run: Optional[RunDetailResponse] = None


class ProjectSummary(BaseModel):
    """看板总览中的单个项目"""
    name: str
    last_run: Optional[RunResponse] = None
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    total: int = 0
    status: str = Field(default="unknown", description="passed / failed / unknown")


class ProjectResponse(BaseModel):
    """项目"""
    id: str
    name: str
    base_url: Optional[str] = None
    port: Optional[int] = None

    class Config:
        from_attributes = True


class PollResponse(BaseModel):
    """变更检测"""
    latest: Optional[datetime] = None
    has_updates: bool = False


class RunStartedResponse(BaseModel):
    """后台执行已提交"""
    message: str
    project_id: str
    grep: Optional[str] = None
