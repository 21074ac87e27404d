from typing import Optional, List, Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


# Paginated response wrapper: used by all list endpoints
class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


# Error responses
class ErrorResponse(BaseModel):
    error: str
    message: str


class ConflictErrorResponse(ErrorResponse):
    showtime_id: Optional[str] = None
    theater: Optional[str] = None
    screen: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class InsufficientSeatsErrorResponse(ErrorResponse):
    showtime_id: str
    available: int
    requested: int


class InternalErrorResponse(ErrorResponse):
    reconciliation_needed: bool = False
