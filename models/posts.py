# models/posts.py

from sqlalchemy import Table, Column, Integer, String, Text, ForeignKey, UniqueConstraint
from database.connection import metadata

posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("title", String, nullable=False),              # 제목
    Column("slug", String, nullable=False, unique=True),  # URL 식별자 (제목에서 파생)
    Column("content", Text, nullable=False),              # 본문(HTML)
    Column("excerpt", Text, nullable=True),
    Column("featured_image", String, nullable=True),
    Column("status", String, default="DRAFT"),            # DRAFT / PENDING / PUBLISHED / ARCHIVED
    Column("view_count", Integer, default=0),             # 조회수
    Column("reading_time", Integer, default=1),           # 분 단위
    Column("seo_title", String, nullable=True),
    Column("seo_description", String, nullable=True),
    Column("seo_keywords", String, nullable=True),
    Column("author_id", Integer, ForeignKey("users.id"), nullable=False),  # 소유자 (변경 불가)
    Column("published_at", String, nullable=True),
    Column("created_at", String),
    Column("updated_at", String, nullable=True),
)

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String, nullable=False),
    Column("slug", String, nullable=False, unique=True),
    Column("description", Text, nullable=True),
    Column("image", String, nullable=True),
    Column("parent_id", Integer, ForeignKey("categories.id"), nullable=True),
    Column("created_at", String),
)

tags = Table(
    "tags",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String, nullable=False),
    Column("slug", String, nullable=False, unique=True),  # 태그 식별자는 slug
    Column("created_at", String),
)

post_categories = Table(
    "post_categories",
    metadata,
    Column("post_id", Integer, ForeignKey("posts.id"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id"), primary_key=True),
)

post_tags = Table(
    "post_tags",
    metadata,
    Column("post_id", Integer, ForeignKey("posts.id"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id"), primary_key=True),
)

# 댓글 테이블 (parent_id 로 답글)
comments = Table(
    "comments",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("content", Text, nullable=False),              # 댓글 내용
    Column("author_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("post_id", Integer, ForeignKey("posts.id"), nullable=False),  # 게시글 ID
    Column("parent_id", Integer, ForeignKey("comments.id"), nullable=True),
    Column("status", String, default="APPROVED"),
    Column("created_at", String),                         # 작성일시
    Column("updated_at", String, nullable=True),          # 수정일시
)

likes = Table(
    "likes",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("post_id", Integer, ForeignKey("posts.id"), nullable=False),
    Column("created_at", String),
    UniqueConstraint("user_id", "post_id"),
)

bookmarks = Table(
    "bookmarks",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("post_id", Integer, ForeignKey("posts.id"), nullable=False),
    Column("created_at", String),
    UniqueConstraint("user_id", "post_id"),
)
