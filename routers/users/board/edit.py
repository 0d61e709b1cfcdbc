from typing import Any, Optional

from fastapi import APIRouter, Body, Depends

from routers.admin.security import get_session_user_id
from services.posts import delete_post, update_post

router = APIRouter(prefix="/api", tags=["posts"])


@router.put("/posts/{post_id}", name="post_edit")
async def post_edit(
    post_id: int,
    body: Any = Body(...),
    principal_id: Optional[int] = Depends(get_session_user_id),
):
    # 작성자 본인 또는 EDITOR/ADMIN
    return await update_post(principal_id, post_id, body)


@router.delete("/posts/{post_id}", name="post_delete")
async def post_delete(
    post_id: int,
    principal_id: Optional[int] = Depends(get_session_user_id),
):
    return await delete_post(principal_id, post_id)
