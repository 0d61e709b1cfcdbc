from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from starlette import status

from routers.admin.security import get_session_user_id
from services.comments import create_comment, delete_comment, list_comments, update_comment

router = APIRouter(prefix="/api", tags=["comments"])


@router.get("/posts/{post_id}/comments")
async def comment_list(post_id: int):
    return await list_comments(post_id)


@router.post("/posts/{post_id}/comments")
async def comment_create(
    post_id: int,
    body: Dict[str, Any] = Body(...),
    principal_id: Optional[int] = Depends(get_session_user_id),
):
    """댓글 작성 (parentId 를 주면 답글)"""
    comment = await create_comment(
        principal_id,
        post_id,
        body.get("content"),
        parent_id=body.get("parentId"),
    )
    return JSONResponse(comment, status_code=status.HTTP_201_CREATED)


@router.put("/comments/{comment_id}")
async def comment_edit(
    comment_id: int,
    body: Dict[str, Any] = Body(...),
    principal_id: Optional[int] = Depends(get_session_user_id),
):
    # 작성자만 수정 가능
    return await update_comment(principal_id, comment_id, body.get("content"))


@router.delete("/comments/{comment_id}")
async def comment_delete(
    comment_id: int,
    principal_id: Optional[int] = Depends(get_session_user_id),
):
    # 작성자 또는 관리자만 삭제 가능
    return await delete_comment(principal_id, comment_id)
