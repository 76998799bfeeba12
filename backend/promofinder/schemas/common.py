"""Response envelope and error schemas shared by all endpoints."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class SearchMeta(BaseModel):
    """Size of a merged search result.

    Offers from all sources are merged and cut to ``limit``; there is no
    paging over the merged set. ``source_page`` is only forwarded to the
    sources as their own page hint.
    """

    source_page: int = 1
    limit: int = 20
    total: int = 0
    returned: int = 0


class ApiResponse(BaseModel, Generic[T]):
    status: str = "success"
    data: T
    meta: Optional[SearchMeta] = None


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Body of handled API errors (e.g. 503 when no source is configured)."""

    status: str = "error"
    error: ErrorDetail
