# database/connection.py
import os
from contextlib import asynccontextmanager

from databases import Database
from sqlalchemy import MetaData

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DB_PATH  = os.path.abspath(os.path.join(BASE_DIR, "..", "db.sqlite3"))

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite+aiosqlite:///{DB_PATH}")

database  = Database(DATABASE_URL)
metadata  = MetaData()


async def create_tables():
    if not database.is_connected:
        await database.connect()

    # users
    await database.execute("""
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT NOT NULL UNIQUE,
        username TEXT NOT NULL UNIQUE,
        password TEXT NOT NULL,
        first_name TEXT,
        last_name TEXT,
        role TEXT NOT NULL DEFAULT 'READER'
            CHECK (role IN ('ADMIN', 'EDITOR', 'AUTHOR', 'READER')),
        is_active BOOLEAN NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at TEXT
    );
    """)

    # categories (parent_id 로 트리 구성)
    await database.execute("""
    CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        slug TEXT NOT NULL UNIQUE,
        description TEXT,
        image TEXT,
        parent_id INTEGER,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        FOREIGN KEY(parent_id) REFERENCES categories(id)
    );
    """)

    await database.execute("""
    CREATE TABLE IF NOT EXISTS tags (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        slug TEXT NOT NULL UNIQUE,
        created_at TEXT NOT NULL DEFAULT (datetime('now'))
    );
    """)

    await database.execute("""
    CREATE TABLE IF NOT EXISTS posts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        slug TEXT NOT NULL UNIQUE,
        content TEXT NOT NULL,
        excerpt TEXT,
        featured_image TEXT,
        status TEXT NOT NULL DEFAULT 'DRAFT'
            CHECK (status IN ('DRAFT', 'PENDING', 'PUBLISHED', 'ARCHIVED')),
        view_count INTEGER NOT NULL DEFAULT 0,
        reading_time INTEGER NOT NULL DEFAULT 1,
        seo_title TEXT,
        seo_description TEXT,
        seo_keywords TEXT,
        author_id INTEGER NOT NULL,
        published_at TEXT,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at TEXT,
        FOREIGN KEY(author_id) REFERENCES users(id)
    );
    """)

    # join 테이블
    await database.execute("""
    CREATE TABLE IF NOT EXISTS post_categories (
        post_id INTEGER NOT NULL,
        category_id INTEGER NOT NULL,
        PRIMARY KEY (post_id, category_id),
        FOREIGN KEY(post_id) REFERENCES posts(id),
        FOREIGN KEY(category_id) REFERENCES categories(id)
    );
    """)
    await database.execute("""
    CREATE TABLE IF NOT EXISTS post_tags (
        post_id INTEGER NOT NULL,
        tag_id INTEGER NOT NULL,
        PRIMARY KEY (post_id, tag_id),
        FOREIGN KEY(post_id) REFERENCES posts(id),
        FOREIGN KEY(tag_id) REFERENCES tags(id)
    );
    """)

    await database.execute("""
    CREATE TABLE IF NOT EXISTS comments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        content TEXT NOT NULL,
        author_id INTEGER NOT NULL,
        post_id INTEGER NOT NULL,
        parent_id INTEGER,
        status TEXT NOT NULL DEFAULT 'APPROVED'
            CHECK (status IN ('PENDING', 'APPROVED', 'REJECTED')),
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at TEXT,
        FOREIGN KEY(author_id) REFERENCES users(id),
        FOREIGN KEY(post_id) REFERENCES posts(id),
        FOREIGN KEY(parent_id) REFERENCES comments(id)
    );
    """)

    # 좋아요/북마크: (user_id, post_id) 당 1행
    await database.execute("""
    CREATE TABLE IF NOT EXISTS likes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        post_id INTEGER NOT NULL,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        UNIQUE(user_id, post_id),
        FOREIGN KEY(user_id) REFERENCES users(id),
        FOREIGN KEY(post_id) REFERENCES posts(id)
    );
    """)
    await database.execute("""
    CREATE TABLE IF NOT EXISTS bookmarks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        post_id INTEGER NOT NULL,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        UNIQUE(user_id, post_id),
        FOREIGN KEY(user_id) REFERENCES users(id),
        FOREIGN KEY(post_id) REFERENCES posts(id)
    );
    """)

    # 인덱스
    await database.execute("""
    CREATE INDEX IF NOT EXISTS idx_posts_status_published
    ON posts(status, published_at DESC);
    """)
    await database.execute("""
    CREATE INDEX IF NOT EXISTS idx_posts_author
    ON posts(author_id);
    """)
    await database.execute("""
    CREATE INDEX IF NOT EXISTS idx_comments_post
    ON comments(post_id, parent_id, created_at);
    """)
    await database.execute("""
    CREATE INDEX IF NOT EXISTS idx_likes_post
    ON likes(post_id);
    """)
    await database.execute("""
    CREATE INDEX IF NOT EXISTS idx_bookmarks_post
    ON bookmarks(post_id);
    """)

    # databases 는 자동 커밋


@asynccontextmanager
async def write_transaction():
    """
    읽은 뒤 쓰는 트랜잭션용. BEGIN IMMEDIATE 로 시작부터 쓰기 lock 을 잡아서
    동시에 들어온 작성자는 busy timeout 동안 순서를 기다린다.
    """
    async with database.connection() as conn:
        await conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            await conn.execute("ROLLBACK")
            raise
        await conn.execute("COMMIT")
