import os
import tempfile

# 앱 모듈을 import 하기 전에 테스트용 DB 경로를 지정해야 한다
_TMP_DIR = tempfile.mkdtemp(prefix="blog-cms-tests-")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(_TMP_DIR, "test.sqlite3")
os.environ.setdefault("SESSION_SECRET", "test-secret")

import httpx
import pytest
from sqlalchemy import delete, insert

from database.connection import create_tables, database, metadata
from models.posts import categories  # noqa: F401  (metadata 에 테이블 등록)
from models.users import create_user, get_user_by_id, update_user_access, utc_now_iso
from services.text import generate_slug

PASSWORD = "password123"


@pytest.fixture
async def db():
    await database.connect()
    await create_tables()
    yield database
    for table in reversed(metadata.sorted_tables):
        await database.execute(delete(table))
    await database.disconnect()


@pytest.fixture
def make_user(db):
    seq = {"n": 0}

    async def _make(role="AUTHOR", active=True, username=None):
        seq["n"] += 1
        name = username or f"{role.lower()}{seq['n']}"
        user_id = await create_user(f"{name}@example.com", name, PASSWORD, role=role)
        if not active:
            await update_user_access(user_id, {"is_active": False})
        return user_id

    return _make


@pytest.fixture
def make_category(db):
    async def _make(name):
        return await database.execute(
            insert(categories).values(name=name, slug=generate_slug(name), created_at=utc_now_iso())
        )

    return _make


@pytest.fixture
async def client_factory(db):
    from main import app

    opened = []

    def _make():
        c = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
        opened.append(c)
        return c

    yield _make
    for c in opened:
        await c.aclose()


@pytest.fixture
def client(client_factory):
    return client_factory()


@pytest.fixture
def login_as():
    async def _login(client, user_id):
        user = await get_user_by_id(user_id)
        res = await client.post("/api/auth/login", json={"email": user["email"], "password": PASSWORD})
        assert res.status_code == 200, res.text
        return res.json()

    return _login


def _post_body(category_ids, **overrides):
    body = {
        "title": "Hello, World!",
        "content": "Some content for the post",
        "categoryIds": list(category_ids),
        "tagNames": [],
    }
    body.update(overrides)
    return body


@pytest.fixture
def post_body():
    return _post_body

