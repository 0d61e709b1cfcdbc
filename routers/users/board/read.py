from typing import Optional

from fastapi import APIRouter, Query

from services import config
from services.posts import list_posts, search_posts

router = APIRouter(prefix="/api", tags=["posts"])


@router.get("/posts", name="post_list")
async def post_list(
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1),
    status: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    author_id: Optional[int] = Query(None, alias="authorId"),
    search: Optional[str] = Query(None),
):
    """목록 조회 - 상태 미지정 시 PUBLISHED 만"""
    return await list_posts(
        status=status,
        category=category,
        tag=tag,
        author_id=author_id,
        search=search,
        page=page,
        limit=limit,
    )


@router.get("/search", name="post_search")
async def post_search(
    q: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_SIZE, ge=1),
):
    return await search_posts(q, page=page, limit=limit)
