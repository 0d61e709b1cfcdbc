# services/categories.py
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy import func, insert, select

from database.connection import database
from models.posts import categories, post_categories
from models.users import utc_now_iso
from .authorization import require_admin
from .errors import Conflict, NotFound, ValidationFailed
from .text import generate_slug

logger = logging.getLogger(__name__)


class CategoryIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[int] = Field(None, alias="parentId")

    @field_validator("name")
    @classmethod
    def name_has_slug(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        if not generate_slug(v):
            raise ValueError("Name must contain letters or digits")
        return v


def _serialize(row, post_count: Optional[int] = None) -> Dict[str, Any]:
    category = {
        "id": row["id"],
        "name": row["name"],
        "slug": row["slug"],
        "description": row["description"],
        "image": row["image"],
        "parentId": row["parent_id"],
        "createdAt": row["created_at"],
    }
    if post_count is not None:
        category["postCount"] = post_count
    return category


async def list_categories() -> List[Dict[str, Any]]:
    """이름순 전체 목록 + 게시글 수"""
    post_count = (
        select(func.count())
        .select_from(post_categories)
        .where(post_categories.c.category_id == categories.c.id)
        .scalar_subquery()
        .label("post_count")
    )
    rows = await database.fetch_all(select(categories, post_count).order_by(categories.c.name))
    return [_serialize(r, r["post_count"]) for r in rows]


async def get_category_by_slug(slug: str) -> Optional[Dict[str, Any]]:
    row = await database.fetch_one(select(categories).where(categories.c.slug == slug))
    return _serialize(row) if row else None


async def create_category(principal_id: Optional[int], data: Any) -> Dict[str, Any]:
    """관리자 전용"""
    user = (await require_admin(principal_id)).require()
    try:
        payload = CategoryIn.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailed.from_errors(exc.errors()) from exc

    slug = generate_slug(payload.name)
    if await get_category_by_slug(slug):
        raise Conflict("Category already exists")

    if payload.parent_id is not None:
        parent = await database.fetch_one(select(categories.c.id).where(categories.c.id == payload.parent_id))
        if not parent:
            raise NotFound("Parent category not found")

    try:
        category_id = await database.execute(
            insert(categories).values(
                name=payload.name,
                slug=slug,
                description=payload.description,
                image=payload.image,
                parent_id=payload.parent_id,
                created_at=utc_now_iso(),
            )
        )
    except sqlite3.IntegrityError as exc:
        # 동시에 같은 이름으로 생성된 경우
        raise Conflict("Category already exists") from exc

    logger.info("category '%s' created by user %s", slug, user.id)
    row = await database.fetch_one(select(categories).where(categories.c.id == category_id))
    return _serialize(row)
