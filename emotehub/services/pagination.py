from dataclasses import dataclass
from typing import Generic, List, Optional, Sequence, TypeVar

from emotehub.models.schemas import EmoteResponse, SearchResponse

T = TypeVar("T")


def clamp_limit(limit: int, max_limit: int) -> int:
    return max(1, min(limit, max_limit))


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page cut from a complete result list."""

    items: List[T]
    page: int
    per_page: int
    total_found: int
    total_pages: int

    @property
    def start_index(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def end_index(self) -> int:
        return min(self.start_index + self.per_page, self.total_found)

    @property
    def empty(self) -> bool:
        return self.total_found == 0

    @property
    def out_of_range(self) -> bool:
        return not self.empty and self.start_index >= self.total_found

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    def to_response(
        self,
        emotes: Optional[List[EmoteResponse]] = None,
        empty_message: str = "No emotes found",
    ) -> SearchResponse:
        """
        Build the paginated response envelope.

        Live and storage backed endpoints both go through here so the
        pagination fields always mean the same thing.
        """
        fields = {
            "page": self.page,
            "totalPages": self.total_pages,
            "resultsPerPage": self.per_page,
            "totalFound": self.total_found,
        }
        if self.empty:
            return SearchResponse(success=True, emotes=[], message=empty_message, hasNextPage=False, **fields)
        if self.out_of_range:
            return SearchResponse(
                success=False,
                emotes=[],
                message=f"Page {self.page} exceeds available pages (total: {self.total_pages})",
                hasNextPage=False,
                **fields,
            )
        return SearchResponse(success=True, emotes=emotes or [], hasNextPage=self.has_next_page, **fields)


def paginate(items: Sequence[T], page: int, limit: int, max_limit: int = 100) -> Page[T]:
    if page < 1:
        raise ValueError("page must be >= 1")
    limit = clamp_limit(limit, max_limit)
    total_found = len(items)
    total_pages = (total_found + limit - 1) // limit  # Ceiling division

    start_idx = (page - 1) * limit
    end_idx = min(start_idx + limit, total_found)
    page_items = list(items[start_idx:end_idx]) if start_idx < total_found else []

    return Page(
        items=page_items,
        page=page,
        per_page=limit,
        total_found=total_found,
        total_pages=total_pages,
    )
