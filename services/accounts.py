# services/accounts.py
import logging
import re
import sqlite3
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from models.users import (
    create_user,
    get_user_by_email,
    get_user_by_id,
    get_user_by_username,
    list_users as fetch_users,
    update_user_access as store_user_access,
    verify_password,
)
from . import config
from .authorization import Role, require_admin
from .errors import AccountDeactivated, Conflict, NotFound, Unauthenticated, ValidationFailed

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,30}$")


class RegisterIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    username: str
    password: str = Field(..., min_length=8, max_length=72)
    first_name: Optional[str] = Field(None, alias="firstName", max_length=100)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=100)

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_RE.match(v):
            raise ValueError("Must be a valid email address")
        return v

    @field_validator("username")
    @classmethod
    def username_format(cls, v: str) -> str:
        v = v.strip()
        if not USERNAME_RE.match(v):
            raise ValueError("Username must be 3-30 letters, digits or underscores")
        return v


class UserAccessIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: Optional[Role] = None
    is_active: Optional[bool] = Field(None, alias="isActive")


def serialize_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": user["id"],
        "email": user["email"],
        "username": user["username"],
        "firstName": user["first_name"],
        "lastName": user["last_name"],
        "role": user["role"],
        "isActive": user["is_active"],
        "createdAt": user["created_at"],
    }


def _validate(model, data: Any):
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailed.from_errors(exc.errors()) from exc


async def register_user(data: Any) -> Dict[str, Any]:
    payload = _validate(RegisterIn, data)

    if await get_user_by_email(payload.email):
        raise Conflict("Email is already registered")
    if await get_user_by_username(payload.username):
        raise Conflict("Username is already taken")

    try:
        user_id = await create_user(
            email=payload.email,
            username=payload.username,
            plain_password=payload.password,
            role=config.DEFAULT_USER_ROLE,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
    except sqlite3.IntegrityError as exc:
        raise Conflict("Email or username is already in use") from exc

    logger.info("user %s registered", user_id)
    return serialize_user(await get_user_by_id(user_id))


async def authenticate_credentials(email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
    """로그인. 성공하면 사용자 정보(비밀번호 제외) 반환."""
    if not email or not password:
        raise ValidationFailed("Email and password are required")

    user = await get_user_by_email(email.strip().lower())
    if not user or not verify_password(password, user["password_hash"]):
        raise Unauthenticated("Invalid email or password")
    if not user["is_active"]:
        raise AccountDeactivated()

    user.pop("password_hash", None)
    return serialize_user(user)


async def list_users(principal_id: Optional[int]) -> List[Dict[str, Any]]:
    (await require_admin(principal_id)).require()
    return [serialize_user(u) for u in await fetch_users()]


async def update_user_access(principal_id: Optional[int], user_id: int, data: Any) -> Dict[str, Any]:
    """
    관리자용 권한/활성 상태 변경. 인가 시 매번 DB 를 읽으므로
    대상 사용자의 다음 요청부터 바로 적용된다.
    """
    admin = (await require_admin(principal_id)).require()
    payload = _validate(UserAccessIn, data)

    target = await get_user_by_id(user_id)
    if not target:
        raise NotFound("User not found")

    values: Dict[str, Any] = {}
    if payload.role is not None:
        values["role"] = payload.role.value
    if payload.is_active is not None:
        values["is_active"] = payload.is_active
    if not values:
        raise ValidationFailed("Nothing to update", details={"body": "Provide role and/or isActive"})

    if target["id"] == admin.id and (values.get("is_active") is False or values.get("role", Role.ADMIN.value) != Role.ADMIN.value):
        raise ValidationFailed("Administrators cannot demote or deactivate themselves")

    await store_user_access(user_id, values)
    logger.info("user %s access changed by admin %s: %s", user_id, admin.id, values)
    return serialize_user(await get_user_by_id(user_id))
