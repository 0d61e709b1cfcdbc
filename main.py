import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from database.connection import database, create_tables

# 집계 라우터
from routers.admin import router as admin_router
from routers.public import router as public_router
from routers.users.board import router as board_router
from routers.users import auth as user_auth
from services.errors import BlogError, InternalFailure, ValidationFailed

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# HTTPException 상태코드 → kind
_STATUS_KINDS = {
    400: "ValidationFailed",
    401: "Unauthenticated",
    403: "Forbidden",
    404: "NotFound",
    405: "ValidationFailed",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await database.connect()
    await create_tables()
    yield
    await database.disconnect()


app = FastAPI(title="Blog CMS", lifespan=lifespan)

# 세션 (쿠키에는 사용자 id 만)
app.add_middleware(
    SessionMiddleware,
    secret_key=os.getenv("SESSION_SECRET", "dev-secret"),
    same_site="lax",
    https_only=os.getenv("SESSION_HTTPS_ONLY", "0") == "1",
)


@app.exception_handler(BlogError)
async def blog_error_handler(request: Request, exc: BlogError):
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # loc 첫 요소("query", "path", "body") 는 제외
    err = ValidationFailed.from_errors(exc.errors(), skip_loc=1)
    return JSONResponse(err.to_dict(), status_code=err.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    kind = _STATUS_KINDS.get(exc.status_code, "InternalFailure")
    return JSONResponse({"error": kind, "message": str(exc.detail)}, status_code=exc.status_code)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    # 스택트레이스는 로그로만
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    err = InternalFailure()
    return JSONResponse(err.to_dict(), status_code=err.status_code)


# ✅ 라우터 등록
app.include_router(user_auth.router)      # 1) 로그인/회원가입 (/api/auth/...)
app.include_router(admin_router)          # 2) 관리자 (/api/admin/..., 카테고리 생성)
app.include_router(board_router)          # 3) 게시글/댓글/좋아요
app.include_router(public_router)         # 4) 공개 (카테고리 목록, health)

for r in app.router.routes:
    logger.debug("route %s %s", getattr(r, "name", None), getattr(r, "path", None))
