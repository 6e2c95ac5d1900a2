"""QA Dashboard - Project Registry

启动时从 Settings 构建的项目配置，通过依赖注入传给请求处理器。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from qadashboard.core.config import Settings


@dataclass(frozen=True)
class ProjectRegistry:
    """项目配置：清单文件映射、保留窗口、执行目录"""
    checklists_dir: Path
    checklist_aliases: dict[str, str] = field(default_factory=dict)
    run_retention: int = 50
    runner_projects: dict[str, Path] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProjectRegistry":
        return cls(
            checklists_dir=Path(settings.CHECKLISTS_DIR),
            checklist_aliases=dict(settings.CHECKLIST_ALIASES),
            run_retention=settings.RUN_RETENTION,
            runner_projects={k: Path(v) for k, v in settings.RUNNER_PROJECTS.items()},
        )

    def checklist_path(self, project_id: str) -> Path:
        """项目 ID -> 清单文件路径（不检查文件是否存在）"""
        filename = self.checklist_aliases.get(project_id)
        if filename is None:
            filename = f"{project_id}.md"
        return self.checklists_dir / filename

    def project_for_file(self, filename: str) -> str:
        """清单文件 -> 第一个映射到它的项目 ID，没有则取文件名主干"""
        for project_id, mapped in self.checklist_aliases.items():
            if mapped == filename:
                return project_id
        return Path(filename).stem

    def runner_workdir(self, project_id: str) -> Optional[Path]:
        return self.runner_projects.get(project_id)
