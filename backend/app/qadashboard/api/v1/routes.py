from fastapi import APIRouter

from qadashboard.api.v1.routes_admin import router as admin_router
from qadashboard.api.v1.routes_manual import router as manual_router
from qadashboard.api.v1.routes_results import router as results_router

# 所有 REST API 都从 /api 开始
router = APIRouter(prefix="/api")

router.include_router(results_router)
router.include_router(manual_router)
router.include_router(admin_router)
