"""
Media lookup for generated games.

No image/video provider is configured yet, so searches only compute their
queries and return nothing. Generated content falls back to text descriptions.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from upcora.services.concepts import generate_media_search_queries

logger = structlog.get_logger()

MAX_IMAGES = 4
MAX_VIDEOS = 2


@dataclass
class MediaItem:
    id: str
    type: str  # "image" or "video"
    url: str
    alt_text: str
    source: str
    relevance_score: float
    width: Optional[int] = None
    height: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "url": self.url,
            "altText": self.alt_text,
            "source": self.source,
            "relevanceScore": self.relevance_score,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class MediaSearchResult:
    images: List[MediaItem] = field(default_factory=list)
    videos: List[MediaItem] = field(default_factory=list)

    @property
    def total_found(self) -> int:
        return len(self.images) + len(self.videos)


def search_images(query: str) -> List[MediaItem]:
    return []


def search_videos(query: str) -> List[MediaItem]:
    return []


def search_media_content(text: str) -> MediaSearchResult:
    queries = generate_media_search_queries(text, 3)
    logger.info("media_search_queries", queries=queries, provider_configured=False)

    found: List[MediaItem] = []
    for query in queries:
        found.extend(search_images(query))
        found.extend(search_videos(query))

    ranked = sorted(found, key=lambda m: m.relevance_score, reverse=True)
    return MediaSearchResult(
        images=[m for m in ranked if m.type == "image"][:MAX_IMAGES],
        videos=[m for m in ranked if m.type == "video"][:MAX_VIDEOS],
    )
