"""QA Dashboard - Admin API Routes

建表（需要 X-Migration-Key）
"""
import logging

from fastapi import APIRouter, Depends

from qadashboard.api.deps import require_migration_key
from qadashboard.database.config import Base, init_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


@router.post("/migrate", dependencies=[Depends(require_migration_key)])
def migrate():
    """创建缺失的表（幂等）"""
    init_db()
    tables = sorted(Base.metadata.tables)
    logger.info(f"数据库迁移完成: {tables}")
    return {
        "success": True,
        "message": "Migration completed successfully",
        "tables": tables,
    }
