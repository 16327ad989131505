from fastapi import APIRouter
from .websites import router as websites_router
from .feeds import router as feeds_router

router = APIRouter()
router.include_router(websites_router)
router.include_router(feeds_router)
