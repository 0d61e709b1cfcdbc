from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from starlette import status

from routers.admin.security import get_session_user_id
from services.posts import create_post

router = APIRouter(prefix="/api", tags=["posts"])


@router.post("/posts", name="post_write")
async def post_write(
    body: Any = Body(...),
    principal_id: Optional[int] = Depends(get_session_user_id),
):
    """
    게시글 작성 (AUTHOR 이상).
    본문 검증은 권한 확인 뒤 서비스에서 수행 → 비로그인은 400 이 아니라 401.
    """
    post = await create_post(principal_id, body)
    return JSONResponse(post, status_code=status.HTTP_201_CREATED)
