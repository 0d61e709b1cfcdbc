from typing import Optional

from fastapi import APIRouter, Depends

from routers.admin.security import get_session_user_id
from services.engagement import (
    bookmark_post,
    engagement_status,
    like_post,
    unbookmark_post,
    unlike_post,
)

router = APIRouter(prefix="/api/posts", tags=["engagement"])


@router.post("/{post_id}/like")
async def post_like(post_id: int, principal_id: Optional[int] = Depends(get_session_user_id)):
    return await like_post(principal_id, post_id)


@router.delete("/{post_id}/like")
async def post_unlike(post_id: int, principal_id: Optional[int] = Depends(get_session_user_id)):
    return await unlike_post(principal_id, post_id)


@router.post("/{post_id}/bookmark")
async def post_bookmark(post_id: int, principal_id: Optional[int] = Depends(get_session_user_id)):
    return await bookmark_post(principal_id, post_id)


@router.delete("/{post_id}/bookmark")
async def post_unbookmark(post_id: int, principal_id: Optional[int] = Depends(get_session_user_id)):
    return await unbookmark_post(principal_id, post_id)


@router.get("/{post_id}/engagement")
async def post_engagement(post_id: int, principal_id: Optional[int] = Depends(get_session_user_id)):
    """추천/북마크 상태 확인 (로그인하지 않은 사용자도 확인 가능)"""
    return await engagement_status(principal_id, post_id)
