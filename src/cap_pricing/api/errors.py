"""
Translation of engine errors into HTTP responses.
"""
from fastapi import HTTPException

from ..errors import (
    PricingError, ConversationStateError, DataSourceUnavailableError, PriceTableValidationError,
)

STATUS_BY_ERROR = [
    (ConversationStateError, 409),
    (DataSourceUnavailableError, 503),
    (PriceTableValidationError, 503),
]


def http_error(error: PricingError) -> HTTPException:
    """Map a PricingError to an HTTPException carrying its {error, category, key} body."""
    status = 422
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status = code
            break
    return HTTPException(status_code=status, detail=error.to_dict())


def not_found(conversation_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            "error": "ConversationNotFound",
            "message": f"Conversation '{conversation_id}' has no quote",
            "category": None,
            "key": conversation_id,
        },
    )
