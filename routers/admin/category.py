from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from starlette import status

from routers.admin.security import get_session_user_id
from services.categories import create_category

router = APIRouter(prefix="/api", tags=["admin:categories"])


@router.post("/categories")
async def admin_category_create(
    body: Dict[str, Any] = Body(...),
    principal_id: Optional[int] = Depends(get_session_user_id),
):
    # 관리자 전용
    category = await create_category(principal_id, body)
    return JSONResponse(category, status_code=status.HTTP_201_CREATED)
