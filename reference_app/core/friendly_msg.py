from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from .breaker import CircuitOpenError

# Checked in order, so subclasses come before their bases.
FRIENDLY_MESSAGES: list[tuple[type[BaseException], str]] = [
    (
        IntegrityError,
        "This record was changed by another request at the same time. Please retry.",
    ),
    (
        OperationalError,
        "The reference store is temporarily unavailable. Please try again shortly.",
    ),
    (SQLAlchemyError, "We could not save or load reference data. Please try again."),
    (CircuitOpenError, "Email delivery is paused for a moment. Please try again later."),
    (TimeoutError, "The request took too long. Please try again later."),
    (ConnectionError, "Unable to reach a required service. Please try again later."),
]

DEFAULT_MESSAGE = "Something went wrong while processing the reference. Please try again."


def get_friendly_message(error: BaseException) -> str:
    for error_type, message in FRIENDLY_MESSAGES:
        if isinstance(error, error_type):
            return message
    return DEFAULT_MESSAGE
