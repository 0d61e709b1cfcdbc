import pytest
from sqlalchemy import func, select

from database.connection import database
from models.posts import bookmarks, likes
from models.users import update_user_access
from services import engagement
from services.errors import AccountDeactivated, AlreadyExists, Conflict, NotFound, Unauthenticated
from services.posts import create_post


@pytest.fixture
async def post_id(make_user, make_category, post_body):
    editor = await make_user("EDITOR")
    cat = await make_category("Technology")
    post = await create_post(editor, post_body([cat], status="PUBLISHED"))
    return post["id"]


async def _rows(table, pid):
    return await database.fetch_val(select(func.count()).select_from(table).where(table.c.post_id == pid))


async def test_like_then_duplicate(make_user, post_id):
    reader = await make_user("READER")

    result = await engagement.like_post(reader, post_id)
    assert result == {"message": "Post liked successfully", "likeCount": 1}

    with pytest.raises(AlreadyExists) as exc:
        await engagement.like_post(reader, post_id)
    assert isinstance(exc.value, Conflict)
    assert exc.value.kind == "Conflict"
    assert exc.value.status_code == 400
    assert await _rows(likes, post_id) == 1


async def test_unlike_without_like(make_user, post_id):
    reader = await make_user("READER")

    with pytest.raises(NotFound) as exc:
        await engagement.unlike_post(reader, post_id)
    assert exc.value.kind == "NotFound"
    assert exc.value.status_code == 400
    assert exc.value.message == "Post not liked"


async def test_counts_match_rows(make_user, post_id):
    users = [await make_user("READER") for _ in range(3)]

    for u in users:
        await engagement.like_post(u, post_id)
    result = await engagement.unlike_post(users[0], post_id)

    assert result["likeCount"] == 2
    assert result["likeCount"] == await _rows(likes, post_id)


async def test_bookmark_cycle(make_user, post_id):
    reader = await make_user("READER")

    added = await engagement.bookmark_post(reader, post_id)
    assert added["bookmarkCount"] == 1
    with pytest.raises(AlreadyExists):
        await engagement.bookmark_post(reader, post_id)

    removed = await engagement.unbookmark_post(reader, post_id)
    assert removed == {"message": "Bookmark removed successfully", "bookmarkCount": 0}
    with pytest.raises(NotFound):
        await engagement.unbookmark_post(reader, post_id)
    assert await _rows(bookmarks, post_id) == 0


async def test_engagement_requires_live_account(make_user, post_id):
    reader = await make_user("READER")

    with pytest.raises(Unauthenticated):
        await engagement.like_post(None, post_id)

    await update_user_access(reader, {"is_active": False})
    with pytest.raises(AccountDeactivated):
        await engagement.like_post(reader, post_id)


async def test_missing_post(make_user, db):
    reader = await make_user("READER")
    with pytest.raises(NotFound) as exc:
        await engagement.like_post(reader, 999)
    assert exc.value.status_code == 404


async def test_engagement_status(make_user, post_id):
    reader = await make_user("READER")
    await engagement.like_post(reader, post_id)

    mine = await engagement.engagement_status(reader, post_id)
    assert mine == {"liked": True, "bookmarked": False, "likeCount": 1, "bookmarkCount": 0}

    anon = await engagement.engagement_status(None, post_id)
    assert anon["liked"] is False
    assert anon["likeCount"] == 1
