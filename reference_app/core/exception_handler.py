from typing import Sequence

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


def field_path(loc: Sequence) -> tuple[str, str]:
    """Split a pydantic error location into its source and a dotted field path.

    ``("body", "reference_provider", "email")`` becomes
    ``("body", "reference_provider.email")``.
    """
    if not loc:
        return "body", ""
    source, *rest = loc
    return str(source), ".".join(str(part) for part in rest)


class ValidationErrorHandler:
    async def __call__(self, request: Request, exc: RequestValidationError):
        details = []
        for err in exc.errors():
            source, field = field_path(err.get("loc", ()))
            details.append(
                {
                    "source": source,
                    "field": field,
                    "msg": str(err.get("msg")),
                    "type": err.get("type"),
                }
            )

        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": "Invalid request payload",
                "details": details,
            },
        )
