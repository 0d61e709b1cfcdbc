from fastapi import APIRouter

from services.categories import list_categories

router = APIRouter(prefix="/api", tags=["public"])


@router.get("/health")
async def health():
    return {"status": "ok"}


# ✅ 카테고리 목록 (비로그인 허용)
@router.get("/categories")
async def category_list():
    return await list_categories()
