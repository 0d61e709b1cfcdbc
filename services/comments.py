# services/comments.py
"""
댓글. 조회 시 최상위 댓글(최신순)에 직속 답글(오래된 순)만 붙여서 돌려준다.
"""
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, insert, select, update

from database.connection import database, write_transaction
from models.posts import comments
from models.users import get_user_summaries, utc_now_iso
from . import config
from .authorization import authenticate, can_delete_comment
from .errors import Forbidden, InternalFailure, NotFound, ValidationFailed
from .posts import ensure_post_exists

logger = logging.getLogger(__name__)


def _clean_content(content: Any) -> str:
    text = content.strip() if isinstance(content, str) else ""
    if not text:
        raise ValidationFailed("Comment content is required", details={"content": "Comment content is required"})
    return text


def _serialize(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "content": row["content"],
        "authorId": row["author_id"],
        "postId": row["post_id"],
        "parentId": row["parent_id"],
        "status": row["status"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


async def _fetch_comment(comment_id: int):
    return await database.fetch_one(select(comments).where(comments.c.id == comment_id))


async def _with_author(row) -> Dict[str, Any]:
    comment = _serialize(row)
    authors = await get_user_summaries([row["author_id"]])
    comment["author"] = authors.get(row["author_id"])
    return comment


async def list_comments(post_id: int) -> List[Dict[str, Any]]:
    await ensure_post_exists(post_id)

    top_rows = await database.fetch_all(
        select(comments)
        .where(
            comments.c.post_id == post_id,
            comments.c.parent_id.is_(None),
            comments.c.status == "APPROVED",
        )
        .order_by(comments.c.created_at.desc(), comments.c.id.desc())
    )
    if not top_rows:
        return []

    top_ids = [r["id"] for r in top_rows]
    reply_rows = await database.fetch_all(
        select(comments)
        .where(comments.c.parent_id.in_(top_ids), comments.c.status == "APPROVED")
        .order_by(comments.c.created_at.asc(), comments.c.id.asc())
    )

    authors = await get_user_summaries([r["author_id"] for r in top_rows] + [r["author_id"] for r in reply_rows])

    replies: Dict[int, List[Dict[str, Any]]] = {cid: [] for cid in top_ids}
    for r in reply_rows:
        reply = _serialize(r)
        reply["author"] = authors.get(r["author_id"])
        replies[r["parent_id"]].append(reply)

    result = []
    for r in top_rows:
        comment = _serialize(r)
        comment["author"] = authors.get(r["author_id"])
        comment["replies"] = replies[r["id"]]
        result.append(comment)
    return result


async def create_comment(
    principal_id: Optional[int],
    post_id: int,
    content: Any,
    parent_id: Optional[int] = None,
) -> Dict[str, Any]:
    user = await authenticate(principal_id)
    text = _clean_content(content)
    await ensure_post_exists(post_id)

    if parent_id is not None:
        try:
            parent_id = int(parent_id)
        except (TypeError, ValueError):
            raise ValidationFailed("Invalid parentId", details={"parentId": "Must be a comment id"})
        parent = await _fetch_comment(parent_id)
        if not parent:
            raise NotFound("Parent comment not found")
        if parent["post_id"] != post_id:
            raise ValidationFailed(
                "Parent comment belongs to another post",
                details={"parentId": "Parent comment belongs to another post"},
            )

    now = utc_now_iso()
    try:
        comment_id = await database.execute(
            insert(comments).values(
                content=text,
                author_id=user.id,
                post_id=post_id,
                parent_id=parent_id,
                status=config.DEFAULT_COMMENT_STATUS,
                created_at=now,
            )
        )
    except sqlite3.DatabaseError as exc:
        logger.exception("failed to create comment on post %s", post_id)
        raise InternalFailure("Failed to create comment") from exc

    return await _with_author(await _fetch_comment(comment_id))


async def update_comment(principal_id: Optional[int], comment_id: int, content: Any) -> Dict[str, Any]:
    """작성자 본인만 수정 가능"""
    user = await authenticate(principal_id)

    comment = await _fetch_comment(comment_id)
    if not comment:
        raise NotFound("Comment not found")
    if comment["author_id"] != user.id:
        raise Forbidden("You can only edit your own comments")

    text = _clean_content(content)
    await database.execute(
        update(comments).where(comments.c.id == comment_id).values(content=text, updated_at=utc_now_iso())
    )
    return await _with_author(await _fetch_comment(comment_id))


async def _subtree_ids(comment_id: int) -> List[int]:
    ids = [comment_id]
    frontier = [comment_id]
    while frontier:
        rows = await database.fetch_all(select(comments.c.id).where(comments.c.parent_id.in_(frontier)))
        frontier = [r["id"] for r in rows]
        ids.extend(frontier)
    return ids


async def delete_comment(principal_id: Optional[int], comment_id: int) -> Dict[str, str]:
    """작성자 또는 관리자(ADMIN)만 삭제 가능. 답글도 함께 삭제."""
    user = await authenticate(principal_id)

    comment = await _fetch_comment(comment_id)
    if not comment:
        raise NotFound("Comment not found")
    if not can_delete_comment(comment["author_id"], user.id, user.role):
        raise Forbidden("You do not have permission to delete this comment")

    async with write_transaction():
        ids = await _subtree_ids(comment_id)
        await database.execute(delete(comments).where(comments.c.id.in_(ids)))

    logger.info("comment %s (+%d replies) deleted by user %s", comment_id, len(ids) - 1, user.id)
    return {"message": "Comment deleted successfully"}
