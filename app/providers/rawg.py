"""
RAWG client - games
"""
from typing import Any, Dict, List

from constants import LIFECYCLE_UPCOMING, MEDIA_KIND_GAME, PROVIDER_RAWG
from exceptions import UpstreamFetchException
from providers.base import ProviderAdapter, lifecycle_from_release_date, release_fields


class RAWGAdapter(ProviderAdapter):
    """Client for RAWG API"""

    name = PROVIDER_RAWG
    media_kinds = (MEDIA_KIND_GAME,)

    def _get(self, path: str, **params) -> Dict[str, Any]:
        if not self.api_key:
            raise UpstreamFetchException(self.name, "RAWG API key not configured")
        params["key"] = self.api_key
        return self._request_json(path, params)

    def search(self, query: str, media_kind: str) -> List[Dict[str, Any]]:
        self.require_kind(media_kind)
        data = self._get("/games", search=query, page=1, page_size=20)
        return data.get("results", [])

    def get_by_id(self, external_id: str, media_kind: str) -> Dict[str, Any]:
        self.require_kind(media_kind)
        return self._get(f"/games/{external_id}")

    def to_essential(self, raw: Dict[str, Any], media_kind: str) -> Dict[str, Any]:
        released = raw.get("released")
        data = {
            "title": raw.get("name") or "",
            "description": raw.get("description_raw"),
            "coverImage": raw.get("background_image"),
            "genres": [{"id": genre.get("id"), "name": genre.get("name")} for genre in raw.get("genres") or []],
            "averageRating": raw.get("rating"),
            "ratingCount": raw.get("ratings_count"),
            "metacritic": raw.get("metacritic"),
            # RAWG reports 0 when it has no playtime estimate
            "playHours": raw.get("playtime") or None,
            "platforms": [(item.get("platform") or {}).get("name") for item in raw.get("platforms") or []],
            "status": LIFECYCLE_UPCOMING if raw.get("tba") else lifecycle_from_release_date(released),
        }
        data.update(release_fields(released))
        return data
