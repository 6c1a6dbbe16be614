from datetime import datetime
from typing import Any

from fastapi import HTTPException

GENERIC_TOKEN_MESSAGE = "Reference request not found or has expired"


class ReferenceServiceError(HTTPException):
    status_code: int = 500
    default_detail: str = "Reference service error"

    def __init__(self, detail: Any = None, headers: dict | None = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail if detail is not None else self.default_detail,
            headers=headers,
        )


class NotFoundError(ReferenceServiceError):
    status_code = 404
    default_detail = "Not found"


class InvalidStateError(ReferenceServiceError):
    status_code = 400
    default_detail = "Action not allowed in the current state"


class ExpiredError(ReferenceServiceError):
    status_code = 400
    default_detail = "Reference request has expired"


class RateLimitedError(ReferenceServiceError):
    status_code = 429
    default_detail = "Too many attempts"

    def __init__(self, detail: str | None = None, next_allowed_at: datetime | None = None):
        self.next_allowed_at = next_allowed_at
        body: Any = detail or self.default_detail
        if next_allowed_at is not None:
            body = {
                "message": body,
                "next_allowed_time": next_allowed_at.isoformat(),
            }
        super().__init__(detail=body)


class DetailsValidationError(ReferenceServiceError):
    status_code = 422
    default_detail = "Invalid verification details"

    def __init__(self, errors: list[dict] | None = None, message: str | None = None):
        self.errors = errors or []
        super().__init__(
            detail={
                "message": message or self.default_detail,
                "errors": self.errors,
            }
        )
