# services/posts.py
"""
게시글 생성/수정/조회/삭제/목록/검색.

게시글 본문과 카테고리·태그 연결은 하나의 트랜잭션으로 저장한다.
수정 시 카테고리·태그 연결은 전부 지우고 새로 만든다(부분 diff 없음).
"""
import asyncio
import logging
import secrets
import sqlite3
import time
from typing import Any, Dict, List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy import delete, func, insert, or_, select, update

from database.connection import database, write_transaction
from models.posts import bookmarks, categories, comments, likes, post_categories, post_tags, posts, tags
from models.users import get_user_summaries, utc_now_iso
from . import config
from .authorization import AuthUser, can_modify_resource, can_set_status, require_author
from .errors import Conflict, Forbidden, InternalFailure, NotFound, ValidationFailed
from .pagination import clamp_page, envelope, offset_for
from .text import calculate_reading_time, generate_slug

logger = logging.getLogger(__name__)


# =========================
# 입력 스키마
# =========================
class PostIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., max_length=200)
    content: str
    excerpt: Optional[str] = Field(None, max_length=500)
    featured_image: Optional[str] = Field(None, alias="featuredImage")
    category_ids: List[int] = Field(..., alias="categoryIds", min_length=1)
    tag_names: List[str] = Field(default_factory=list, alias="tagNames")
    seo_title: Optional[str] = Field(None, alias="seoTitle", max_length=60)
    seo_description: Optional[str] = Field(None, alias="seoDescription", max_length=160)
    seo_keywords: Optional[str] = Field(None, alias="seoKeywords")
    # 생략하면 생성 시 DRAFT, 수정 시 기존 상태 유지
    status: Optional[Literal["DRAFT", "PENDING", "PUBLISHED", "ARCHIVED"]] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Content is required")
        return v

    @field_validator("featured_image")
    @classmethod
    def featured_image_url(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        parsed = urlparse(v.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Must be a valid URL")
        return v.strip()

    @field_validator("category_ids")
    @classmethod
    def unique_categories(cls, v: List[int]) -> List[int]:
        return list(dict.fromkeys(v))

    @field_validator("tag_names")
    @classmethod
    def tags_have_slugs(cls, v: List[str]) -> List[str]:
        # slug 기준으로 중복 제거 (태그 식별자는 slug)
        seen: Dict[str, str] = {}
        for name in v:
            name = name.strip()
            slug = generate_slug(name)
            if not slug:
                raise ValueError(f"Tag name '{name}' must contain letters or digits")
            seen.setdefault(slug, name)
        return list(seen.values())


def parse_post_input(data: Any) -> PostIn:
    if isinstance(data, PostIn):
        return data
    try:
        return PostIn.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailed.from_errors(exc.errors()) from exc


# =========================
# 조회 헬퍼
# =========================
async def _fetch_post_row(post_id: int) -> Optional[Dict[str, Any]]:
    row = await database.fetch_one(select(posts).where(posts.c.id == post_id))
    return dict(row._mapping) if row else None


async def _ensure_categories_exist(category_ids: List[int]) -> None:
    rows = await database.fetch_all(
        select(categories.c.id).where(categories.c.id.in_(category_ids))
    )
    found = {r["id"] for r in rows}
    missing = [cid for cid in category_ids if cid not in found]
    if missing:
        raise ValidationFailed(
            "Invalid category",
            details={"categoryIds": f"Unknown category id(s): {', '.join(str(m) for m in missing)}"},
        )


async def _slug_taken(slug: str, exclude_id: Optional[int] = None) -> bool:
    q = select(posts.c.id).where(posts.c.slug == slug)
    if exclude_id is not None:
        q = q.where(posts.c.id != exclude_id)
    return await database.fetch_one(q.limit(1)) is not None


async def _resolve_slug(base: str, attempt: int, exclude_id: Optional[int] = None) -> str:
    """
    첫 시도: 비어 있으면 base, 아니면 base-<ms 타임스탬프>.
    재시도(동시 작성으로 unique 위반): 타임스탬프 + 난수.
    """
    stamp = str(int(time.time() * 1000))
    if attempt == 0:
        if not await _slug_taken(base, exclude_id):
            return base
        return f"{base}-{stamp}"
    return f"{base}-{stamp}-{secrets.token_hex(3)}"


def _is_slug_conflict(exc: sqlite3.IntegrityError) -> bool:
    return "posts.slug" in str(exc)


def _is_locked(exc: sqlite3.OperationalError) -> bool:
    return "database is locked" in str(exc)


async def _link_categories(post_id: int, category_ids: List[int]) -> None:
    for category_id in category_ids:
        await database.execute(
            insert(post_categories).values(post_id=post_id, category_id=category_id)
        )


async def _upsert_tag(name: str) -> int:
    slug = generate_slug(name)
    await database.execute(
        """
        INSERT INTO tags (name, slug, created_at)
        VALUES (:name, :slug, :created_at)
        ON CONFLICT(slug) DO NOTHING
        """,
        {"name": name, "slug": slug, "created_at": utc_now_iso()},
    )
    return await database.fetch_val(select(tags.c.id).where(tags.c.slug == slug))


async def _link_tags(post_id: int, tag_names: List[str]) -> None:
    for name in tag_names:
        tag_id = await _upsert_tag(name)
        await database.execute(insert(post_tags).values(post_id=post_id, tag_id=tag_id))


# =========================
# 직렬화
# =========================
def _serialize_post(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "title": row["title"],
        "slug": row["slug"],
        "content": row["content"],
        "excerpt": row["excerpt"],
        "featuredImage": row["featured_image"],
        "status": row["status"],
        "viewCount": row["view_count"],
        "readingTime": row["reading_time"],
        "seoTitle": row["seo_title"],
        "seoDescription": row["seo_description"],
        "seoKeywords": row["seo_keywords"],
        "authorId": row["author_id"],
        "publishedAt": row["published_at"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


async def _with_relations(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """작성자 / 카테고리 / 태그 / 댓글·좋아요 수를 한 번에 붙인다."""
    if not rows:
        return []
    ids = [r["id"] for r in rows]

    authors = await get_user_summaries(r["author_id"] for r in rows)

    cat_rows = await database.fetch_all(
        select(
            post_categories.c.post_id,
            categories.c.id.label("category_id"),
            categories.c.name,
            categories.c.slug,
        )
        .select_from(post_categories.join(categories, post_categories.c.category_id == categories.c.id))
        .where(post_categories.c.post_id.in_(ids))
        .order_by(categories.c.name)
    )
    tag_rows = await database.fetch_all(
        select(
            post_tags.c.post_id,
            tags.c.id.label("tag_id"),
            tags.c.name,
            tags.c.slug,
        )
        .select_from(post_tags.join(tags, post_tags.c.tag_id == tags.c.id))
        .where(post_tags.c.post_id.in_(ids))
        .order_by(tags.c.name)
    )
    comment_counts = await _count_by_post(comments, ids)
    like_counts = await _count_by_post(likes, ids)

    result = []
    for row in rows:
        post = _serialize_post(row)
        post["author"] = authors.get(row["author_id"])
        post["categories"] = [
            {"id": c["category_id"], "name": c["name"], "slug": c["slug"]}
            for c in cat_rows if c["post_id"] == row["id"]
        ]
        post["tags"] = [
            {"id": t["tag_id"], "name": t["name"], "slug": t["slug"]}
            for t in tag_rows if t["post_id"] == row["id"]
        ]
        post["commentCount"] = comment_counts.get(row["id"], 0)
        post["likeCount"] = like_counts.get(row["id"], 0)
        result.append(post)
    return result


async def _count_by_post(table, post_ids: List[int]) -> Dict[int, int]:
    rows = await database.fetch_all(
        select(table.c.post_id, func.count().label("cnt"))
        .where(table.c.post_id.in_(post_ids))
        .group_by(table.c.post_id)
    )
    return {r["post_id"]: r["cnt"] for r in rows}


async def _load_post(post_id: int) -> Dict[str, Any]:
    row = await _fetch_post_row(post_id)
    if not row:
        raise NotFound("Post not found")
    return (await _with_relations([row]))[0]


# =========================
# 저장 (create / update 공용)
# =========================
async def _save_post(
    payload: PostIn,
    author: AuthUser,
    current: Optional[Dict[str, Any]] = None,
) -> int:
    """
    current 가 없으면 새 글, 있으면 수정.
    slug unique 위반과 lock 대기 초과만 재시도하고, 그 외 DB 오류는 롤백 후 InternalFailure.
    """
    now = utc_now_iso()
    if payload.status is not None:
        status = payload.status
    else:
        status = current["status"] if current else config.DEFAULT_POST_STATUS
    values = {
        "title": payload.title,
        "content": payload.content,
        "excerpt": payload.excerpt,
        "featured_image": payload.featured_image,
        "status": status,
        "reading_time": calculate_reading_time(payload.content),
        "seo_title": payload.seo_title,
        "seo_description": payload.seo_description,
        "seo_keywords": payload.seo_keywords,
        "updated_at": now,
    }
    if current is None:
        values["published_at"] = now if status == "PUBLISHED" else None
    elif status == "PUBLISHED" and not current["published_at"]:
        values["published_at"] = now

    title_changed = current is None or payload.title != current["title"]
    base_slug = generate_slug(payload.title) or config.SLUG_FALLBACK
    exclude_id = current["id"] if current else None

    for attempt in range(config.SLUG_MAX_ATTEMPTS):
        try:
            async with write_transaction():
                if title_changed:
                    values["slug"] = await _resolve_slug(base_slug, attempt, exclude_id)

                if current is None:
                    post_id = await database.execute(
                        insert(posts).values(
                            **values,
                            author_id=author.id,
                            view_count=0,
                            created_at=now,
                        )
                    )
                else:
                    post_id = current["id"]
                    await database.execute(update(posts).where(posts.c.id == post_id).values(**values))
                    await database.execute(delete(post_categories).where(post_categories.c.post_id == post_id))
                    await database.execute(delete(post_tags).where(post_tags.c.post_id == post_id))

                await _link_categories(post_id, payload.category_ids)
                await _link_tags(post_id, payload.tag_names)
            return int(post_id)
        except sqlite3.IntegrityError as exc:
            if title_changed and _is_slug_conflict(exc):
                logger.warning("slug collision on '%s' (attempt %d), regenerating", values.get("slug"), attempt + 1)
                continue
            logger.exception("integrity error while saving post")
            raise InternalFailure("Failed to save post") from exc
        except sqlite3.OperationalError as exc:
            if _is_locked(exc) and attempt + 1 < config.SLUG_MAX_ATTEMPTS:
                logger.warning("database locked while saving post (attempt %d), retrying", attempt + 1)
                await asyncio.sleep(config.LOCK_RETRY_DELAY * (attempt + 1))
                continue
            logger.exception("database error while saving post")
            raise InternalFailure("Failed to save post") from exc
        except sqlite3.DatabaseError as exc:
            logger.exception("database error while saving post")
            raise InternalFailure("Failed to save post") from exc

    raise Conflict("Could not allocate a unique slug, please retry")


# =========================
# 공개 API
# =========================
async def create_post(principal_id: Optional[int], data: Any) -> Dict[str, Any]:
    user = (await require_author(principal_id)).require()
    payload = parse_post_input(data)

    status = payload.status or config.DEFAULT_POST_STATUS
    if not can_set_status(user.role, status):
        raise Forbidden(f"You do not have permission to create a {status} post")
    await _ensure_categories_exist(payload.category_ids)

    post_id = await _save_post(payload, user)
    logger.info("post %s created by user %s", post_id, user.id)
    return await _load_post(post_id)


async def update_post(principal_id: Optional[int], post_id: int, data: Any) -> Dict[str, Any]:
    user = (await require_author(principal_id)).require()

    current = await _fetch_post_row(post_id)
    if not current:
        raise NotFound("Post not found")
    if not can_modify_resource(current["author_id"], user.id, user.role):
        raise Forbidden("You do not have permission to modify this post")

    payload = parse_post_input(data)
    changing = payload.status is not None and payload.status != current["status"]
    if changing and not can_set_status(user.role, payload.status):
        raise Forbidden(f"You do not have permission to set status {payload.status}")
    await _ensure_categories_exist(payload.category_ids)

    await _save_post(payload, user, current=current)
    logger.info("post %s updated by user %s", post_id, user.id)
    return await _load_post(post_id)


async def get_post(post_id: int) -> Dict[str, Any]:
    """
    단건 조회. 성공할 때마다 조회수 +1 (재시도하면 그만큼 증가).
    """
    await database.execute(
        update(posts).where(posts.c.id == post_id).values(view_count=posts.c.view_count + 1)
    )
    return await _load_post(post_id)


async def delete_post(principal_id: Optional[int], post_id: int) -> Dict[str, str]:
    user = (await require_author(principal_id)).require()

    current = await _fetch_post_row(post_id)
    if not current:
        raise NotFound("Post not found")
    if not can_modify_resource(current["author_id"], user.id, user.role):
        raise Forbidden("You do not have permission to delete this post")

    try:
        async with database.transaction():
            for table in (post_categories, post_tags, likes, bookmarks, comments):
                await database.execute(delete(table).where(table.c.post_id == post_id))
            await database.execute(delete(posts).where(posts.c.id == post_id))
    except sqlite3.DatabaseError as exc:
        logger.exception("database error while deleting post %s", post_id)
        raise InternalFailure("Failed to delete post") from exc

    logger.info("post %s deleted by user %s", post_id, user.id)
    return {"message": "Post deleted successfully"}


def _contains(column, term: str):
    """대소문자 무시 부분 일치. 패턴은 바인딩 값으로 넘긴다 (SQL 문자열에 % 없음)."""
    escaped = term.lower().replace("/", "//").replace("%", "/%").replace("_", "/_")
    return func.lower(column).like(f"%{escaped}%", escape="/")


def _post_filters(
    status: Optional[str] = None,
    category: Optional[str] = None,
    tag: Optional[str] = None,
    author_id: Optional[int] = None,
    search: Optional[str] = None,
) -> list:
    # 상태 지정이 없으면 공개 글만 (초안 노출 방지)
    conds = [posts.c.status == (status or config.DEFAULT_LIST_STATUS)]
    if category:
        conds.append(posts.c.id.in_(
            select(post_categories.c.post_id)
            .select_from(post_categories.join(categories, post_categories.c.category_id == categories.c.id))
            .where(categories.c.slug == category)
        ))
    if tag:
        conds.append(posts.c.id.in_(
            select(post_tags.c.post_id)
            .select_from(post_tags.join(tags, post_tags.c.tag_id == tags.c.id))
            .where(tags.c.slug == tag)
        ))
    if author_id is not None:
        conds.append(posts.c.author_id == author_id)
    if search:
        conds.append(or_(_contains(posts.c.title, search), _contains(posts.c.content, search)))
    return conds


async def _paginated(conds: list, page: Optional[int], limit: Optional[int]) -> Dict[str, Any]:
    page, limit = clamp_page(page, limit)
    total = await database.fetch_val(select(func.count()).select_from(posts).where(*conds))
    rows = await database.fetch_all(
        select(posts)
        .where(*conds)
        .order_by(posts.c.published_at.desc(), posts.c.id.desc())
        .limit(limit)
        .offset(offset_for(page, limit))
    )
    data = await _with_relations([dict(r._mapping) for r in rows])
    return envelope(data, page, limit, total or 0)


async def list_posts(
    status: Optional[str] = None,
    category: Optional[str] = None,
    tag: Optional[str] = None,
    author_id: Optional[int] = None,
    search: Optional[str] = None,
    page: Optional[int] = 1,
    limit: Optional[int] = config.DEFAULT_PAGE_SIZE,
) -> Dict[str, Any]:
    """목록 조회. 조회수는 건드리지 않는다."""
    if status is not None and status not in config.POST_STATUSES:
        raise ValidationFailed(details={"status": f"Must be one of {', '.join(config.POST_STATUSES)}"})
    conds = _post_filters(status, category, tag, author_id, search)
    return await _paginated(conds, page, limit)


async def search_posts(
    query: Optional[str],
    page: Optional[int] = 1,
    limit: Optional[int] = config.DEFAULT_PAGE_SIZE,
) -> Dict[str, Any]:
    if not query or not query.strip():
        raise ValidationFailed("Search query is required", details={"q": "Search query is required"})

    term = query.strip()
    conds = [
        posts.c.status == "PUBLISHED",
        or_(
            _contains(posts.c.title, term),
            _contains(posts.c.content, term),
            _contains(posts.c.excerpt, term),
        ),
    ]
    result = await _paginated(conds, page, limit)
    return {"query": query, **result}


async def ensure_post_exists(post_id: int) -> Dict[str, Any]:
    row = await _fetch_post_row(post_id)
    if not row:
        raise NotFound("Post not found")
    return row
