from fastapi import APIRouter

from services.posts import get_post

router = APIRouter(prefix="/api", tags=["posts"])


@router.get("/posts/{post_id}", name="post_view")
async def post_view(post_id: int):
    # 조회할 때마다 조회수 +1
    return await get_post(post_id)
