from fastapi import APIRouter

from app.api.v1.analytics import router as analytics_router
from app.api.v1.files import router as files_router

router = APIRouter()
router.include_router(files_router)
router.include_router(analytics_router)
