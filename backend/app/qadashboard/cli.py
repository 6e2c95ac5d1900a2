from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich import print
from rich.table import Table

from qadashboard.core.config import settings
from qadashboard.core.exceptions import NotFoundError
from qadashboard.core.registry import ProjectRegistry
from qadashboard.services.checklist.parser import parse_checklist
from qadashboard.services.checklist.service import ChecklistService

app = typer.Typer(add_completion=False, help="QA Dashboard CLI")


# ============================================================
# 小工具：日志
# ============================================================
def _info(msg: str) -> None:
    print(f"[cyan][QAD][/cyan] {msg}")


def _ok(msg: str) -> None:
    print(f"[green][QAD][OK][/green] {msg}")


def _fail(msg: str, code: int = 1) -> NoReturn:
    print(f"[red][QAD][FAIL][/red] {msg}")
    raise typer.Exit(code)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="监听地址"),
    port: int = typer.Option(3030, help="监听端口"),
    reload: bool = typer.Option(False, help="开发模式自动重载"),
) -> None:
    """启动 API 服务"""
    import uvicorn

    _info(f"QA Dashboard 启动: http://{host}:{port}  (db={settings.DB_URL})")
    uvicorn.run("qadashboard.main:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db_cmd() -> None:
    """创建数据库表"""
    from qadashboard.database.config import init_db

    init_db()
    _ok(f"数据表已创建: {settings.DB_URL}")


@app.command()
def parse(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="markdown 清单文件"),
    as_json: bool = typer.Option(False, "--json", help="输出 JSON"),
) -> None:
    """解析单个清单文件"""
    doc = parse_checklist(path.read_text(encoding="utf-8"))

    if as_json:
        typer.echo(json.dumps(doc.to_dict(), ensure_ascii=False, indent=2))
        return

    table = Table(title=f"{path.name}: {len(doc.items)} items / {len(doc.categories)} categories")
    table.add_column("#", justify="right")
    table.add_column("Category")
    table.add_column("Title")
    for item in doc.items:
        table.add_row(str(item.index), item.category, item.title)
    print(table)


@app.command()
def checklists(
    project: Optional[str] = typer.Argument(None, help="项目 ID（省略则列出全部）"),
) -> None:
    """列出清单目录，或显示某个项目的清单"""
    service = ChecklistService(ProjectRegistry.from_settings(settings))

    if project is None:
        rows = service.list_checklists()
        if not rows:
            _fail(f"没有找到清单: {settings.CHECKLISTS_DIR}")
        for row in rows:
            _info(f"{row['project_id']:<20} {row['name']:<30} {row['item_count']} items")
        return

    try:
        doc = service.get_checklist(project)
    except NotFoundError as e:
        _fail(e.message)
    _ok(f"{project}: {len(doc.items)} items in {len(doc.categories)} categories")
    for category in doc.categories:
        typer.echo(f"  - {category}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
