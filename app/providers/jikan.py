"""
Jikan (MyAnimeList) client - anime and manga
"""
from typing import Any, Dict, List

from constants import (
    LIFECYCLE_FINISHED,
    LIFECYCLE_ONGOING,
    LIFECYCLE_UPCOMING,
    MEDIA_KIND_ANIME,
    MEDIA_KIND_MANGA,
    PROVIDER_JIKAN,
)
from providers.base import ProviderAdapter, release_fields

STATUS_MAP = {
    "currently airing": LIFECYCLE_ONGOING,
    "publishing": LIFECYCLE_ONGOING,
    "on hiatus": LIFECYCLE_ONGOING,
    "not yet aired": LIFECYCLE_UPCOMING,
    "not yet published": LIFECYCLE_UPCOMING,
    "finished airing": LIFECYCLE_FINISHED,
    "finished": LIFECYCLE_FINISHED,
    "discontinued": LIFECYCLE_FINISHED,
}


class JikanAdapter(ProviderAdapter):
    """Client for the Jikan API (no key, strict rate limit)"""

    name = PROVIDER_JIKAN
    media_kinds = (MEDIA_KIND_ANIME, MEDIA_KIND_MANGA)

    def search(self, query: str, media_kind: str) -> List[Dict[str, Any]]:
        self.require_kind(media_kind)
        data = self._request_json(f"/{media_kind}", {"q": query, "page": 1, "limit": 20})
        return data.get("data", [])

    def get_by_id(self, external_id: str, media_kind: str) -> Dict[str, Any]:
        self.require_kind(media_kind)
        data = self._request_json(f"/{media_kind}/{external_id}")
        return data.get("data") or {}

    def external_id(self, raw):
        value = raw.get("mal_id")
        return str(value) if value is not None else None

    @staticmethod
    def image_url(images):
        jpg = (images or {}).get("jpg") or {}
        return jpg.get("large_image_url") or jpg.get("image_url")

    def to_essential(self, raw: Dict[str, Any], media_kind: str) -> Dict[str, Any]:
        data = {
            "title": raw.get("title") or raw.get("title_english") or "",
            "description": raw.get("synopsis"),
            "coverImage": self.image_url(raw.get("images")),
            "genres": [{"id": genre.get("mal_id"), "name": genre.get("name")} for genre in raw.get("genres") or []],
            "averageRating": raw.get("score"),
            "ratingCount": raw.get("scored_by"),
            "popularity": raw.get("popularity"),
            "members": raw.get("members"),
            "status": STATUS_MAP.get((raw.get("status") or "").lower(), LIFECYCLE_FINISHED),
        }

        if media_kind == MEDIA_KIND_ANIME:
            data.update(release_fields((raw.get("aired") or {}).get("from")))
            if raw.get("year") and "releaseYear" not in data:
                data["releaseYear"] = raw["year"]
            data["episodes"] = raw.get("episodes")
            data["studios"] = [studio.get("name") for studio in raw.get("studios") or []]
        else:
            data.update(release_fields((raw.get("published") or {}).get("from")))
            data["chapters"] = raw.get("chapters")
            data["volumes"] = raw.get("volumes")
            data["authors"] = [author.get("name") for author in raw.get("authors") or []]
        return data
