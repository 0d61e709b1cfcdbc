import pytest
from sqlalchemy import func, select

from database.connection import database
from models.posts import comments
from services import comments as comment_service
from services.errors import Forbidden, NotFound, Unauthenticated, ValidationFailed
from services.posts import create_post


@pytest.fixture
async def two_posts(make_user, make_category, post_body):
    editor = await make_user("EDITOR")
    cat = await make_category("Technology")
    first = await create_post(editor, post_body([cat], title="First", status="PUBLISHED"))
    second = await create_post(editor, post_body([cat], title="Second", status="PUBLISHED"))
    return first["id"], second["id"]


async def _count():
    return await database.fetch_val(select(func.count()).select_from(comments))


async def test_thread_shape_and_order(make_user, two_posts):
    post_id, _ = two_posts
    alice = await make_user("READER")
    bob = await make_user("READER")

    older = await comment_service.create_comment(alice, post_id, "  first!  ")
    newer = await comment_service.create_comment(bob, post_id, "second")
    reply1 = await comment_service.create_comment(bob, post_id, "reply one", parent_id=older["id"])
    reply2 = await comment_service.create_comment(alice, post_id, "reply two", parent_id=str(older["id"]))
    await comment_service.create_comment(bob, post_id, "nested", parent_id=reply1["id"])

    assert older["content"] == "first!"
    assert older["status"] == "APPROVED"
    assert older["author"]["id"] == alice

    thread = await comment_service.list_comments(post_id)
    assert [c["id"] for c in thread] == [newer["id"], older["id"]]
    assert [r["id"] for r in thread[1]["replies"]] == [reply1["id"], reply2["id"]]
    # 직속 답글만 붙는다
    assert thread[1]["replies"][0].get("replies") is None
    assert thread[0]["replies"] == []


async def test_reply_to_missing_parent_creates_nothing(make_user, two_posts):
    post_id, _ = two_posts
    reader = await make_user("READER")

    with pytest.raises(NotFound):
        await comment_service.create_comment(reader, post_id, "orphan", parent_id=4242)
    assert await _count() == 0


async def test_reply_must_share_post(make_user, two_posts):
    first, second = two_posts
    reader = await make_user("READER")
    parent = await comment_service.create_comment(reader, first, "on first")

    with pytest.raises(ValidationFailed) as exc:
        await comment_service.create_comment(reader, second, "cross", parent_id=parent["id"])
    assert "parentId" in exc.value.details


async def test_create_validation(make_user, two_posts):
    post_id, _ = two_posts
    reader = await make_user("READER")

    with pytest.raises(Unauthenticated):
        await comment_service.create_comment(None, post_id, "hi")
    with pytest.raises(ValidationFailed):
        await comment_service.create_comment(reader, post_id, "   ")
    with pytest.raises(NotFound):
        await comment_service.create_comment(reader, 999, "hi")
    with pytest.raises(NotFound):
        await comment_service.list_comments(999)


async def test_only_author_edits(make_user, two_posts):
    post_id, _ = two_posts
    owner = await make_user("READER")
    admin = await make_user("ADMIN")
    comment = await comment_service.create_comment(owner, post_id, "original")

    with pytest.raises(Forbidden):
        await comment_service.update_comment(admin, comment["id"], "admin edit")

    edited = await comment_service.update_comment(owner, comment["id"], " edited ")
    assert edited["content"] == "edited"
    assert edited["updatedAt"] is not None

    with pytest.raises(ValidationFailed):
        await comment_service.update_comment(owner, comment["id"], "")
    with pytest.raises(NotFound):
        await comment_service.update_comment(owner, 999, "x")


async def test_delete_rules_and_subtree(make_user, two_posts):
    post_id, _ = two_posts
    owner = await make_user("READER")
    editor = await make_user("EDITOR")
    admin = await make_user("ADMIN")

    top = await comment_service.create_comment(owner, post_id, "top")
    reply = await comment_service.create_comment(editor, post_id, "reply", parent_id=top["id"])
    await comment_service.create_comment(owner, post_id, "deep", parent_id=reply["id"])
    keep = await comment_service.create_comment(owner, post_id, "unrelated")

    with pytest.raises(Forbidden):
        await comment_service.delete_comment(editor, top["id"])

    result = await comment_service.delete_comment(admin, top["id"])
    assert result == {"message": "Comment deleted successfully"}
    remaining = await database.fetch_all(select(comments.c.id))
    assert [r["id"] for r in remaining] == [keep["id"]]

    # 작성자 본인 삭제
    await comment_service.delete_comment(owner, keep["id"])
    assert await _count() == 0
