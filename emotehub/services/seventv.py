import asyncio
import logging
import re
from typing import List, Optional

import aiohttp

from emotehub.config import Settings
from emotehub.exceptions import CatalogError
from emotehub.models.catalog import AnimationFilter, CatalogEntry, ImageVariant

logger = logging.getLogger(__name__)

SEARCH_QUERY = """
query EmoteSearch($query: String, $tags: [String!]!, $sortBy: SortBy!, $filters: Filters, $page: Int, $perPage: Int!, $isDefaultSetSet: Boolean!, $defaultSetId: Id!) {
  emotes {
    search(
      query: $query
      tags: { tags: $tags, match: ANY }
      sort: { sortBy: $sortBy, order: DESCENDING }
      filters: $filters
      page: $page
      perPage: $perPage
    ) {
      items {
        id
        defaultName
        owner {
          mainConnection {
            platformDisplayName
          }
        }
        images {
          url
          mime
          size
          scale
          width
          frameCount
        }
        ranking(ranking: TRENDING_WEEKLY)
        inEmoteSets(emoteSetIds: [$defaultSetId]) @include(if: $isDefaultSetSet) {
          emoteSetId
          emote {
            id
            alias
          }
        }
      }
      totalCount
      pageCount
    }
  }
}
"""

TRENDING_QUERY = """
query GetTrendingEmotes($limit: Int, $filter: EmoteSearchFilter, $period: String!) {
  emotes(query: "", limit: $limit, filter: $filter, sort: { value: $period, order: DESCENDING }) {
    items {
      id
      name
      animated
      host {
        url
        files {
          name
          format
          width
          height
        }
      }
    }
  }
}
"""

HEADERS = {
    "Content-Type": "application/json"
}

_SCALE_RE = re.compile(r"^(\d+)x")


def _upstream_animated_flag(animation_filter: AnimationFilter) -> Optional[bool]:
    # 7TV can only narrow to animated emotes; static filtering happens locally
    return True if animation_filter == AnimationFilter.animated else None


def apply_animation_filter(entries: List[CatalogEntry], animation_filter: AnimationFilter) -> List[CatalogEntry]:
    if animation_filter == AnimationFilter.animated:
        return [e for e in entries if e.has_animated_image]
    if animation_filter == AnimationFilter.static:
        return [e for e in entries if not e.has_animated_image]
    return entries


def parse_search_item(item: dict) -> CatalogEntry:
    """Normalise one v4 ``emotes.search`` item."""
    owner = ((item.get("owner") or {}).get("mainConnection") or {}).get("platformDisplayName")
    images = tuple(
        ImageVariant(
            url=img["url"],
            mime=img["mime"],
            scale=img.get("scale") or 1,
            width=img.get("width") or 0,
            frame_count=max(img.get("frameCount") or 1, 1),
        )
        for img in item.get("images") or []
    )
    return CatalogEntry(
        id=item["id"],
        name=item.get("defaultName") or "",
        owner=owner or None,
        images=images,
        ranking=item.get("ranking"),
    )


def parse_trending_item(item: dict) -> CatalogEntry:
    """Normalise one v3 trending item (``host.files``) into the v4 image shape."""
    host = item.get("host") or {}
    base_url = host.get("url", "")
    if base_url.startswith("//"):
        base_url = "https:" + base_url
    frame_count = 2 if item.get("animated") else 1

    images = []
    for f in host.get("files") or []:
        match = _SCALE_RE.match(f["name"])
        images.append(
            ImageVariant(
                url=f"{base_url}/{f['name']}",
                mime=f"image/{f['format'].lower()}",
                scale=int(match.group(1)) if match else 1,
                width=f.get("width") or 0,
                frame_count=frame_count,
            )
        )
    return CatalogEntry(id=item["id"], name=item.get("name") or "", images=tuple(images))


def _parse_items(items, parser) -> List[CatalogEntry]:
    entries = []
    for item in items or []:
        try:
            entries.append(parser(item))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed 7TV item {item!r:.80}: {e}")
    return entries


class SevenTVClient:
    """Fetches emotes from the 7TV GraphQL API. Upstream failures come back as an empty list."""

    def __init__(self, session: aiohttp.ClientSession, settings: Settings):
        self.session = session
        self.search_url = settings.SEVENTV_SEARCH_URL
        self.trending_url = settings.SEVENTV_TRENDING_URL

    async def _post(self, url: str, query: str, variables: dict) -> dict:
        payload = {
            "query": query,
            "variables": variables
        }
        async with self.session.post(url, headers=HEADERS, json=payload) as response:
            if response.status != 200:
                raise CatalogError(f"HTTP {response.status}: {(await response.text())[:200]}")
            data = await response.json(content_type=None)
        if not isinstance(data, dict):
            raise CatalogError("Unexpected response body")
        if data.get("errors"):
            raise CatalogError(f"GraphQL errors: {data['errors']}")
        return data.get("data") or {}

    async def search(
        self,
        query: str,
        limit: int = 100,
        animation_filter: AnimationFilter = AnimationFilter.all,
    ) -> List[CatalogEntry]:
        """Search emotes by name (v4 API)."""
        variables = {
            "defaultSetId": "",
            "filters": {"animated": _upstream_animated_flag(animation_filter)},
            "isDefaultSetSet": False,
            "page": 1,
            "perPage": limit,
            "query": query,
            "sortBy": "TOP_ALL_TIME",
            "tags": [],
        }
        try:
            data = await self._post(self.search_url, SEARCH_QUERY, variables)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError, CatalogError) as e:
            logger.error(f"Error from 7TV search API for {query!r}: {e}")
            return []

        items = ((data.get("emotes") or {}).get("search") or {}).get("items")
        return apply_animation_filter(_parse_items(items, parse_search_item), animation_filter)

    async def trending(
        self,
        period: str = "trending_weekly",
        limit: int = 20,
        animation_filter: AnimationFilter = AnimationFilter.all,
    ) -> List[CatalogEntry]:
        """
        Fetch trending emotes (v3 API).

        - period: trending_daily, trending_weekly, trending_monthly, or popularity
        - limit: number of emotes to fetch
        """
        period = getattr(period, "value", period)
        try:
            return await self.fetch_trending(period, limit, animation_filter)
        except CatalogError as e:
            logger.error(f"Error from 7TV trending API for {period}: {e}")
            return []

    async def fetch_trending(
        self,
        period: str,
        limit: int,
        animation_filter: AnimationFilter = AnimationFilter.all,
    ) -> List[CatalogEntry]:
        """Like ``trending`` but raises ``CatalogError`` when 7TV cannot be reached."""
        period = getattr(period, "value", period)
        variables = {
            "limit": limit,
            "filter": {"animated": _upstream_animated_flag(animation_filter)},
            "period": period,
        }
        try:
            data = await self._post(self.trending_url, TRENDING_QUERY, variables)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise CatalogError(str(e) or type(e).__name__) from e

        items = (data.get("emotes") or {}).get("items")
        return apply_animation_filter(_parse_items(items, parse_trending_item), animation_filter)
