from src.shared.schemas.base import (
    ApiResponse,
    BaseSchema,
    OffsetPaginatedResponse,
    SuccessResponse,
    ErrorResponse,
    ErrorDetail,
)

__all__ = [
    "ApiResponse",
    "BaseSchema",
    "OffsetPaginatedResponse",
    "SuccessResponse",
    "ErrorResponse",
    "ErrorDetail",
]
