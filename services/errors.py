# services/errors.py
from typing import Any, Dict, Iterable, Optional

from fastapi import HTTPException, status


class BlogError(HTTPException):
    """
    서비스 계층 공통 예외. `kind` 는 클라이언트가 분기할 수 있는 고정 문자열.
    """
    kind = "InternalFailure"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)
        self.details = details

    @property
    def message(self) -> str:
        return self.detail

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class Unauthenticated(BlogError):
    kind = "Unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class AccountDeactivated(BlogError):
    kind = "AccountDeactivated"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Account is deactivated"


class Forbidden(BlogError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFound(BlogError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class NotEngaged(NotFound):
    # 좋아요/북마크 해제 시 기록이 없는 경우: kind 는 NotFound, 응답은 400
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationFailed(BlogError):
    kind = "ValidationFailed"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"

    @classmethod
    def from_errors(cls, errors: Iterable[Dict[str, Any]], skip_loc: int = 0) -> "ValidationFailed":
        """pydantic / FastAPI 에러 목록 → {필드: 메시지}"""
        details: Dict[str, str] = {}
        for err in errors:
            loc = [str(part) for part in err.get("loc", ())][skip_loc:]
            field = ".".join(loc) or "body"
            msg = str(err.get("msg", "Invalid value"))
            if msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            details.setdefault(field, msg)
        return cls(details=details)


class Conflict(BlogError):
    kind = "Conflict"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class AlreadyExists(Conflict):
    # 좋아요/북마크 중복 추가
    default_message = "Already exists"


class InternalFailure(BlogError):
    pass
