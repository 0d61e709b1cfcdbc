# models/users.py
from typing import Optional, Dict, Any, List
import datetime

import bcrypt
from sqlalchemy import Table, Column, Integer, String, Boolean, select, insert, update

from database.connection import metadata, database

# =========================
# 유저 테이블 정의
# =========================
users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("email", String, unique=True, nullable=False),     # 로그인 키
    Column("username", String, unique=True, nullable=False),
    Column("password", String, nullable=False),               # bcrypt 해시 저장
    Column("first_name", String, nullable=True),
    Column("last_name", String, nullable=True),
    Column("role", String, default="READER"),                 # ADMIN / EDITOR / AUTHOR / READER
    Column("is_active", Boolean, default=True),               # 비활성화(소프트 삭제 대신)
    Column("created_at", String),
    Column("updated_at", String, nullable=True),
)

# =========================
# 비밀번호 해시/검증
# =========================
def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # 72바이트 초과 등 bcrypt 가 거부하는 입력
        return False

def utc_now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")

# =========================
# DB 헬퍼 함수 (Databases 사용)
# =========================
_PUBLIC_COLUMNS = (
    users.c.id,
    users.c.email,
    users.c.username,
    users.c.first_name,
    users.c.last_name,
    users.c.role,
    users.c.is_active,
    users.c.created_at,
)

def _row_to_user(row, with_password: bool = False) -> Dict[str, Any]:
    user = {
        "id": row["id"],
        "email": row["email"],
        "username": row["username"],
        "first_name": row["first_name"],
        "last_name": row["last_name"],
        "role": row["role"],
        # SQLite 는 Boolean 을 0/1 로 돌려줄 수 있음
        "is_active": bool(row["is_active"]),
        "created_at": row["created_at"],
    }
    if with_password:
        user["password_hash"] = row["password"]
    return user

async def get_user_by_id(user_id: int) -> Optional[Dict[str, Any]]:
    """
    id로 사용자 1명 조회. 비활성 사용자도 그대로 반환한다(판단은 호출자 몫).
    """
    q = select(*_PUBLIC_COLUMNS).where(users.c.id == user_id).limit(1)
    row = await database.fetch_one(q)
    if not row:
        return None
    return _row_to_user(row)

async def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    """
    email로 사용자 1명 조회 (비밀번호 해시 포함).
    """
    q = select(*_PUBLIC_COLUMNS, users.c.password).where(users.c.email == email).limit(1)
    row = await database.fetch_one(q)
    if not row:
        return None
    return _row_to_user(row, with_password=True)

async def get_user_by_username(username: str) -> Optional[Dict[str, Any]]:
    q = select(*_PUBLIC_COLUMNS).where(users.c.username == username).limit(1)
    row = await database.fetch_one(q)
    if not row:
        return None
    return _row_to_user(row)

async def get_user_summaries(user_ids) -> Dict[int, Dict[str, Any]]:
    """
    게시글/댓글 작성자 표시용 요약 정보 {id: {...}}
    """
    ids = sorted(set(user_ids))
    if not ids:
        return {}
    q = select(
        users.c.id,
        users.c.username,
        users.c.first_name,
        users.c.last_name,
    ).where(users.c.id.in_(ids))
    rows = await database.fetch_all(q)
    return {
        r["id"]: {
            "id": r["id"],
            "username": r["username"],
            "firstName": r["first_name"],
            "lastName": r["last_name"],
        }
        for r in rows
    }

async def list_users() -> List[Dict[str, Any]]:
    rows = await database.fetch_all(select(*_PUBLIC_COLUMNS).order_by(users.c.id.desc()))
    return [_row_to_user(r) for r in rows]

async def create_user(
    email: str,
    username: str,
    plain_password: str,
    role: str = "READER",
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> int:
    """
    사용자 생성 후 id 반환. 비밀번호는 bcrypt 해시로 저장.
    """
    q = (
        insert(users)
        .values(
            email=email,
            username=username,
            password=hash_password(plain_password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=True,
            created_at=utc_now_iso(),
        )
    )
    # databases execute는 PK를 반환합니다(SQLite OK)
    new_id = await database.execute(q)
    return int(new_id) if new_id is not None else 0

async def update_user_access(user_id: int, values: Dict[str, Any]) -> None:
    """
    관리자용: role / is_active 변경.
    """
    q = (
        update(users)
        .where(users.c.id == user_id)
        .values(**values, updated_at=utc_now_iso())
    )
    await database.execute(q)
