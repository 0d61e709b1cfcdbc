# routers/users/auth.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from starlette import status

from routers.admin.security import end_session, get_session_user_id, start_session
from services.accounts import authenticate_credentials, register_user, serialize_user
from services.authorization import authenticate
from models.users import get_user_by_id

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register")
async def register(request: Request, body: Dict[str, Any] = Body(...)):
    """회원가입 후 자동 로그인"""
    user = await register_user(body)
    start_session(request, user)
    return JSONResponse(user, status_code=status.HTTP_201_CREATED)


@router.post("/login")
async def login(request: Request, body: Dict[str, Any] = Body(...)):
    user = await authenticate_credentials(body.get("email"), body.get("password"))
    # ✅ 세션에는 id 만 저장 (권한은 요청마다 DB 에서 확인)
    start_session(request, user)
    return user


@router.post("/logout")
async def logout(request: Request):
    end_session(request)
    return {"message": "Logged out"}


@router.get("/me")
async def me(principal_id: Optional[int] = Depends(get_session_user_id)):
    """현재 로그인한 사용자 (DB 기준 최신 정보)"""
    user = await authenticate(principal_id)
    return serialize_user(await get_user_by_id(user.id))
