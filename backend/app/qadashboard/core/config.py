from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

# 多个项目 ID 可以指向同一份清单文件
DEFAULT_CHECKLIST_ALIASES: dict[str, str] = {
    "kanban": "kanban.md",
    "crossfit-generator": "wodforge.md",
    "wodforge": "wodforge.md",
    "rental": "sorring-udlejning.md",
    "sorring-udlejning": "sorring-udlejning.md",
    "sorring3d": "sorring3d.md",
    "sorring-3d": "sorring3d.md",
    "grablist": "grablist.md",
    "shopping-list": "grablist.md",
    "calify": "calify.md",
    "ical-adjuster": "calify.md",
    "playwright": "playwright.md",
    "test-dashboard": "playwright.md",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QAD_", env_file=".env", extra="ignore")

    ENV: str = Field(default="dev")
    DB_URL: str = Field(default="sqlite:///./qadashboard.db")
    LOG_DIR: str = Field(default="logs")
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])

    # 手工测试清单
    CHECKLISTS_DIR: str = Field(default="./data/checklists")
    CHECKLIST_ALIASES: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_CHECKLIST_ALIASES))

    # 每个项目保留的自动化运行记录数
    RUN_RETENTION: int = Field(default=50, ge=1)

    # 缺陷看板（外部 issue tracker）
    TRACKER_API_URL: str = Field(default="https://kanban.exe.pm/api/board")
    TRACKER_CARD_URL: str = Field(default="https://kanban.exe.pm/card/")
    TRACKER_TIMEOUT: float = Field(default=10.0, gt=0)

    # 管理端点密钥（X-Migration-Key）
    MIGRATION_KEY: str | None = Field(default=None)

    # 后台 Playwright 执行：项目 ID -> 工作目录
    RUNNER_PROJECTS: dict[str, str] = Field(default_factory=dict)
    RUNNER_TIMEOUT: float = Field(default=600.0, gt=0)


settings = Settings()
