"""
QA Dashboard 测试配置

统一管理测试数据库、项目配置与外部看板的替身。
"""
import json
import textwrap

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from qadashboard.core.registry import ProjectRegistry
from qadashboard.database.config import Base, get_db
from qadashboard.database import models  # noqa: F401 - 注册模型
from qadashboard.main import app
from qadashboard.services.checklist.parser import parse_checklist
from qadashboard.services.issue_tracker import IssueTrackerClient, TrackerConfig, get_issue_tracker

# 使用文件数据库进行测试（内存数据库有连接隔离问题）
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SAMPLE_CHECKLIST = textwrap.dedent("""\
    # Kanban - E2E Test Checklist

    ## Auth
    - [ ] Login works
    - [ ] Logout works
    ### Edge Cases
    - [ ] Login with bad password

    ## Boards
    - [ ] Create board
    - [x] Already verified

    ## Known Issues
    - [ ] Should not appear
    """)


def override_get_db():
    """覆盖数据库依赖"""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """每个测试前创建所有表，测试后清理"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """提供数据库会话"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def session_factory():
    """后台任务使用的会话工厂"""
    return TestingSessionLocal


@pytest.fixture
def checklists_dir(tmp_path):
    """临时清单目录：kanban.md + README.md"""
    directory = tmp_path / "checklists"
    directory.mkdir()
    (directory / "kanban.md").write_text(SAMPLE_CHECKLIST, encoding="utf-8")
    (directory / "README.md").write_text("# Checklists\n", encoding="utf-8")
    return directory


@pytest.fixture
def checklist_doc():
    """SAMPLE_CHECKLIST 的解析结果（4 个条目）"""
    return parse_checklist(SAMPLE_CHECKLIST)


@pytest.fixture
def registry(checklists_dir):
    """替换 app.state.registry，测试后恢复"""
    original = app.state.registry
    test_registry = ProjectRegistry(
        checklists_dir=checklists_dir,
        checklist_aliases={"kanban": "kanban.md", "kanban-board": "kanban.md"},
        run_retention=5,
    )
    app.state.registry = test_registry
    yield test_registry
    app.state.registry = original


@pytest.fixture
def client(registry):
    """提供测试客户端"""
    from fastapi.testclient import TestClient
    return TestClient(app)


class FakeTracker:
    """记录请求的看板替身（httpx.MockTransport）"""

    def __init__(self, fail_categories=(), card_prefix="card"):
        self.requests = []
        self.fail_categories = set(fail_categories)
        self.card_prefix = card_prefix

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        for category in self.fail_categories:
            if f"BUG: {category} -" in payload["title"]:
                return httpx.Response(500, text="boom")
        return httpx.Response(201, json={"id": f"{self.card_prefix}-{len(self.requests)}"})

    def client(self) -> IssueTrackerClient:
        return IssueTrackerClient(
            TrackerConfig(api_url="https://tracker.test/api/board", card_url="https://tracker.test/card/"),
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def fake_tracker():
    """替换看板依赖"""
    tracker = FakeTracker()
    app.dependency_overrides[get_issue_tracker] = tracker.client
    yield tracker
    app.dependency_overrides.pop(get_issue_tracker, None)
