from typing import Optional

from fastapi import Request


async def get_session_user_id(request: Request) -> Optional[int]:
    """
    세션에서 사용자 id 만 꺼낸다. role 등은 세션 값을 믿지 않고
    서비스 계층에서 매번 DB 로 다시 확인한다.
    """
    user = request.session.get("user")
    if not isinstance(user, dict):
        return None
    try:
        return int(user["id"])
    except (KeyError, TypeError, ValueError):
        return None


def start_session(request: Request, user: dict) -> None:
    request.session["user"] = {"id": user["id"]}


def end_session(request: Request) -> None:
    request.session.pop("user", None)
