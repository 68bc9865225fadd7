from pydantic import BaseModel
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")

class Pagination(BaseModel):
    total: int
    page: int
    pages: int
    limit: int

class ApiResponse(BaseModel, Generic[T]):
    """Envelope shared by every endpoint."""
    status: str = "success"
    message: Optional[str] = None
    data: Optional[T] = None
    pagination: Optional[Pagination] = None

class Page(Generic[T]):
    """A slice of results plus the numbers needed to build ``Pagination``."""

    def __init__(self, items: List[T], total: int, page: int, limit: int):
        self.items = items
        self.total = total
        self.page = page
        self.limit = limit

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0

    def pagination(self) -> Pagination:
        return Pagination(total=self.total, page=self.page, pages=self.pages, limit=self.limit)

def paginate(query, page: int, limit: int) -> Page:
    """Offset pagination over a SQLAlchemy query, 1-indexed pages."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(items, total, page, limit)
