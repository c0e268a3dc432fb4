from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class AnimationFilter(str, Enum):
    all = "all"
    animated = "animated"
    static = "static"


class TrendingPeriod(str, Enum):
    daily = "trending_daily"
    weekly = "trending_weekly"
    monthly = "trending_monthly"
    all_time = "popularity"


def resolve_animation_filter(
    emote_type: Optional[AnimationFilter] = None,
    animated_only: Optional[bool] = None,
) -> AnimationFilter:
    """Collapse the ``emote_type`` and legacy ``animated_only`` parameters into one filter."""
    if emote_type is not None:
        return AnimationFilter(emote_type)
    if animated_only:
        return AnimationFilter.animated
    return AnimationFilter.all


class ImageVariant(BaseModel):
    """One encoded rendition of an emote image."""

    model_config = ConfigDict(frozen=True)

    url: str
    mime: str
    scale: int = 1
    width: int = 0
    frame_count: int = Field(1, ge=1)

    @property
    def animated(self) -> bool:
        return self.frame_count > 1


class CatalogEntry(BaseModel):
    """An emote as returned by 7TV, normalised across API versions."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    owner: Optional[str] = None
    images: Tuple[ImageVariant, ...] = ()
    ranking: Optional[int] = None

    @property
    def has_animated_image(self) -> bool:
        return any(image.animated for image in self.images)
