from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from routers.admin.security import get_session_user_id
from services.accounts import list_users, update_user_access

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users")
async def admin_users(principal_id: Optional[int] = Depends(get_session_user_id)):
    return await list_users(principal_id)


@router.patch("/users/{user_id}")
async def admin_user_access(
    user_id: int,
    body: Dict[str, Any] = Body(...),
    principal_id: Optional[int] = Depends(get_session_user_id),
):
    """
    권한(role) / 활성 상태(isActive) 변경.
    대상 사용자가 로그인 중이어도 다음 요청부터 바로 반영된다.
    """
    return await update_user_access(principal_id, user_id, body)
