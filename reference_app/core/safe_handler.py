import logging
from functools import wraps

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from .errors import ReferenceServiceError
from .friendly_msg import get_friendly_message

logger = logging.getLogger("reference.routes")

# Injected dependencies and request bodies stay out of the log line.
_UNLOGGED_ARGS = {"self", "db", "payload"}
TOKEN_PREFIX_CHARS = 6


def describe_call(func, kwargs: dict) -> str:
    """Render a handler call as ``Routes.method(arg=value, ...)`` for logs.

    Provider tokens are bearer credentials, so only a short prefix is shown.
    """
    parts = []
    for name, value in kwargs.items():
        if name in _UNLOGGED_ARGS:
            continue
        if name == "token":
            value = f"{str(value)[:TOKEN_PREFIX_CHARS]}..."
        parts.append(f"{name}={value}")
    return f"{func.__qualname__}({', '.join(parts)})"


def safe_handler(func):
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except ReferenceServiceError as e:
            logger.info(
                "%s -> %s %s", describe_call(func, kwargs), e.status_code, type(e).__name__
            )
            raise
        except HTTPException as e:
            logger.warning(
                "%s -> %s: %s", describe_call(func, kwargs), e.status_code, e.detail
            )
            raise
        except IntegrityError as e:
            logger.warning("%s -> conflict: %s", describe_call(func, kwargs), e.orig)
            raise HTTPException(status_code=409, detail=get_friendly_message(e))
        except Exception as e:
            logger.error(
                "[Unhandled Error] %s: %s", describe_call(func, kwargs), e, exc_info=True
            )
            raise HTTPException(status_code=500, detail=get_friendly_message(e))

    return wrapper
