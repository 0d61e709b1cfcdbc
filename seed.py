# seed.py
"""
기본 카테고리와 (선택) 관리자 계정을 넣는다. 여러 번 실행해도 안전.

    SEED_ADMIN_EMAIL=admin@example.com SEED_ADMIN_USERNAME=admin \
    SEED_ADMIN_PASSWORD=changeme123 python seed.py
"""
import asyncio
import logging
import os

from sqlalchemy import insert, select

from database.connection import database, create_tables
from models.posts import categories
from models.users import create_user, get_user_by_email, utc_now_iso
from services import config
from services.text import generate_slug

logger = logging.getLogger("seed")


async def seed_categories() -> int:
    created = 0
    for item in config.DEFAULT_CATEGORIES:
        slug = generate_slug(item["name"])
        exists = await database.fetch_one(select(categories.c.id).where(categories.c.slug == slug))
        if exists:
            continue
        await database.execute(
            insert(categories).values(
                name=item["name"],
                slug=slug,
                description=item.get("description"),
                created_at=utc_now_iso(),
            )
        )
        created += 1
    return created


async def seed_admin():
    # 로그인은 소문자 이메일로 조회한다
    email = (os.getenv("SEED_ADMIN_EMAIL") or "").strip().lower()
    password = os.getenv("SEED_ADMIN_PASSWORD")
    if not email or not password:
        return None
    if await get_user_by_email(email):
        return None
    username = os.getenv("SEED_ADMIN_USERNAME", "admin")
    return await create_user(email, username, password, role="ADMIN")


async def main():
    await database.connect()
    try:
        await create_tables()
        created = await seed_categories()
        logger.info("categories created: %d", created)

        admin_id = await seed_admin()
        if admin_id:
            logger.info("admin user created: id=%s", admin_id)
        else:
            logger.info("admin user skipped")
    finally:
        await database.disconnect()


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    asyncio.run(main())
