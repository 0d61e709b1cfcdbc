# services/engagement.py
"""
좋아요 / 북마크. (user_id, post_id) 당 1행만 존재한다.
추가·삭제 후 개수는 카운터 컬럼이 아니라 매번 COUNT(*) 로 다시 센다.
"""
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import Table, and_, delete, func, insert, select

from database.connection import database
from models.posts import bookmarks, likes
from models.users import utc_now_iso
from .authorization import authenticate
from .errors import AlreadyExists, InternalFailure, NotEngaged
from .posts import ensure_post_exists

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ledger:
    table: Table
    count_key: str
    added: str
    removed: str
    duplicate: str
    missing: str


LIKES = Ledger(
    table=likes,
    count_key="likeCount",
    added="Post liked successfully",
    removed="Post unliked successfully",
    duplicate="Post already liked",
    missing="Post not liked",
)

BOOKMARKS = Ledger(
    table=bookmarks,
    count_key="bookmarkCount",
    added="Post bookmarked successfully",
    removed="Bookmark removed successfully",
    duplicate="Post already bookmarked",
    missing="Post not bookmarked",
)


def _pair(ledger: Ledger, user_id: int, post_id: int):
    return and_(ledger.table.c.user_id == user_id, ledger.table.c.post_id == post_id)


async def _has_entry(ledger: Ledger, user_id: int, post_id: int) -> bool:
    row = await database.fetch_one(select(ledger.table.c.id).where(_pair(ledger, user_id, post_id)))
    return row is not None


async def count_entries(ledger: Ledger, post_id: int) -> int:
    total = await database.fetch_val(
        select(func.count()).select_from(ledger.table).where(ledger.table.c.post_id == post_id)
    )
    return int(total or 0)


async def add_entry(ledger: Ledger, principal_id: Optional[int], post_id: int) -> Dict[str, Any]:
    user = await authenticate(principal_id)
    await ensure_post_exists(post_id)

    if await _has_entry(ledger, user.id, post_id):
        raise AlreadyExists(ledger.duplicate)

    try:
        await database.execute(
            insert(ledger.table).values(user_id=user.id, post_id=post_id, created_at=utc_now_iso())
        )
    except sqlite3.IntegrityError as exc:
        # 동시 요청이 먼저 들어간 경우 unique 제약에서 걸린다
        raise AlreadyExists(ledger.duplicate) from exc
    except sqlite3.DatabaseError as exc:
        logger.exception("failed to add %s entry", ledger.table.name)
        raise InternalFailure() from exc

    return {"message": ledger.added, ledger.count_key: await count_entries(ledger, post_id)}


async def remove_entry(ledger: Ledger, principal_id: Optional[int], post_id: int) -> Dict[str, Any]:
    user = await authenticate(principal_id)
    await ensure_post_exists(post_id)

    if not await _has_entry(ledger, user.id, post_id):
        raise NotEngaged(ledger.missing)

    await database.execute(delete(ledger.table).where(_pair(ledger, user.id, post_id)))
    return {"message": ledger.removed, ledger.count_key: await count_entries(ledger, post_id)}


async def like_post(principal_id: Optional[int], post_id: int) -> Dict[str, Any]:
    return await add_entry(LIKES, principal_id, post_id)


async def unlike_post(principal_id: Optional[int], post_id: int) -> Dict[str, Any]:
    return await remove_entry(LIKES, principal_id, post_id)


async def bookmark_post(principal_id: Optional[int], post_id: int) -> Dict[str, Any]:
    return await add_entry(BOOKMARKS, principal_id, post_id)


async def unbookmark_post(principal_id: Optional[int], post_id: int) -> Dict[str, Any]:
    return await remove_entry(BOOKMARKS, principal_id, post_id)


async def engagement_status(principal_id: Optional[int], post_id: int) -> Dict[str, Any]:
    """로그인하지 않은 사용자도 확인 가능 (이때 liked / bookmarked 는 False)"""
    await ensure_post_exists(post_id)
    liked = bookmarked = False
    if principal_id is not None:
        liked = await _has_entry(LIKES, principal_id, post_id)
        bookmarked = await _has_entry(BOOKMARKS, principal_id, post_id)
    return {
        "liked": liked,
        "bookmarked": bookmarked,
        "likeCount": await count_entries(LIKES, post_id),
        "bookmarkCount": await count_entries(BOOKMARKS, post_id),
    }
