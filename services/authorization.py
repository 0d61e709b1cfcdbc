# services/authorization.py
"""
권한 검사.

세션에는 사용자 id 만 신뢰한다. 권한이 필요한 호출마다 DB 에서
role / is_active 를 다시 읽으므로, 관리자가 권한을 바꾸거나 계정을
비활성화하면 해당 사용자의 바로 다음 요청부터 반영된다.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from models.users import get_user_by_id
from .errors import AccountDeactivated, BlogError, Forbidden, NotFound, Unauthenticated

logger = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "ADMIN"
    EDITOR = "EDITOR"
    AUTHOR = "AUTHOR"
    READER = "READER"


ADMIN_ONLY: FrozenSet[Role] = frozenset({Role.ADMIN})
EDITOR_OR_ABOVE: FrozenSet[Role] = frozenset({Role.ADMIN, Role.EDITOR})
AUTHOR_OR_ABOVE: FrozenSet[Role] = frozenset({Role.ADMIN, Role.EDITOR, Role.AUTHOR})
ANY_ROLE: FrozenSet[Role] = frozenset(Role)

# 남의 리소스(게시글) 수정/삭제 가능 여부
MODIFY_OTHERS = {
    Role.ADMIN: True,
    Role.EDITOR: True,
    Role.AUTHOR: False,
    Role.READER: False,
}

# 남의 댓글 삭제 가능 여부 (수정은 작성자만)
DELETE_OTHERS_COMMENTS = {
    Role.ADMIN: True,
    Role.EDITOR: False,
    Role.AUTHOR: False,
    Role.READER: False,
}

# 역할별로 지정 가능한 게시글 상태
SETTABLE_STATUSES = {
    Role.ADMIN: frozenset({"DRAFT", "PENDING", "PUBLISHED", "ARCHIVED"}),
    Role.EDITOR: frozenset({"DRAFT", "PENDING", "PUBLISHED", "ARCHIVED"}),
    Role.AUTHOR: frozenset({"DRAFT", "PENDING"}),
    Role.READER: frozenset(),
}


@dataclass(frozen=True)
class AuthUser:
    id: int
    email: str
    username: str
    role: Role


@dataclass(frozen=True)
class AuthResult:
    authorized: bool
    user: Optional[AuthUser] = None
    error: Optional[BlogError] = None

    def require(self) -> AuthUser:
        """거부된 결과면 해당 예외를 그대로 던진다."""
        if not self.authorized or self.user is None:
            raise self.error or Forbidden()
        return self.user


async def authorize_user(principal_id: Optional[int], required_roles: Iterable[Role]) -> AuthResult:
    """
    principal_id(세션에서 꺼낸 사용자 id)를 DB 기준으로 다시 확인하고
    required_roles 포함 여부를 판단한다.
    """
    if principal_id is None:
        return AuthResult(False, error=Unauthenticated())

    row = await get_user_by_id(principal_id)
    if not row:
        logger.info("authorization rejected: user %s no longer exists", principal_id)
        return AuthResult(False, error=NotFound("User not found"))

    if not row["is_active"]:
        logger.info("authorization rejected: user %s is deactivated", principal_id)
        return AuthResult(False, error=AccountDeactivated())

    role = Role(row["role"])
    if role not in frozenset(required_roles):
        return AuthResult(False, error=Forbidden())

    return AuthResult(
        True,
        user=AuthUser(id=row["id"], email=row["email"], username=row["username"], role=role),
    )


async def require_admin(principal_id: Optional[int]) -> AuthResult:
    return await authorize_user(principal_id, ADMIN_ONLY)


async def require_editor(principal_id: Optional[int]) -> AuthResult:
    return await authorize_user(principal_id, EDITOR_OR_ABOVE)


async def require_author(principal_id: Optional[int]) -> AuthResult:
    return await authorize_user(principal_id, AUTHOR_OR_ABOVE)


async def authenticate(principal_id: Optional[int]) -> AuthUser:
    """로그인만 필요한 작업(댓글, 좋아요 등). 비활성 계정은 여기서도 막힌다."""
    return (await authorize_user(principal_id, ANY_ROLE)).require()


def can_modify_resource(resource_owner_id: int, user_id: int, user_role: Role) -> bool:
    if resource_owner_id == user_id:
        return True
    return MODIFY_OTHERS[Role(user_role)]


def can_delete_comment(comment_author_id: int, user_id: int, user_role: Role) -> bool:
    if comment_author_id == user_id:
        return True
    return DELETE_OTHERS_COMMENTS[Role(user_role)]


def can_set_status(user_role: Role, post_status: str) -> bool:
    return post_status in SETTABLE_STATUSES[Role(user_role)]
