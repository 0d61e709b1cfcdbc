# routers/admin/__init__.py
from fastapi import APIRouter
from .users import router as users_router
from .category import router as category_router

router = APIRouter()

# 각각의 세부 라우터들을 포함
router.include_router(users_router)
router.include_router(category_router)
