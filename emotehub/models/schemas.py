from typing import List, Optional

from pydantic import BaseModel, Field

from emotehub.models.catalog import AnimationFilter, resolve_animation_filter

DEFAULT_SEARCH_LIMIT = 100


class EmoteResponse(BaseModel):
    fileName: str
    url: str
    emoteId: str
    emoteName: str
    owner: Optional[str] = None
    animated: bool = False
    scale: Optional[int] = None
    mime: Optional[str] = None


class SearchResponse(BaseModel):
    success: bool
    totalFound: int
    emotes: List[EmoteResponse]
    message: Optional[str] = None
    cached: bool = False
    processingTime: Optional[float] = None
    page: Optional[int] = 1
    totalPages: Optional[int] = 1
    resultsPerPage: Optional[int] = None
    hasNextPage: Optional[bool] = False


class SearchRequest(BaseModel):
    query: str
    limit: Optional[int] = Field(None, ge=1, le=200)
    perPage: Optional[int] = Field(None, ge=1, le=200)  # 7TV naming for limit
    animated_only: Optional[bool] = None
    emote_type: Optional[AnimationFilter] = None

    @property
    def effective_limit(self) -> int:
        return self.limit or self.perPage or DEFAULT_SEARCH_LIMIT

    @property
    def animation_filter(self) -> AnimationFilter:
        return resolve_animation_filter(self.emote_type, self.animated_only)


class CacheClearResponse(BaseModel):
    success: bool
    message: str
    type: str
    removed: dict[str, int] = Field(default_factory=dict)
