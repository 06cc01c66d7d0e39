"""
TMDB client - movies and series
"""
from typing import Any, Dict, List

from constants import (
    LIFECYCLE_FINISHED,
    LIFECYCLE_ONGOING,
    LIFECYCLE_UPCOMING,
    MEDIA_KIND_MOVIE,
    MEDIA_KIND_SERIES,
    PROVIDER_TMDB,
)
from exceptions import UpstreamFetchException
from providers.base import ProviderAdapter, release_fields

STATUS_MAP = {
    "returning series": LIFECYCLE_ONGOING,
    "in production": LIFECYCLE_UPCOMING,
    "post production": LIFECYCLE_UPCOMING,
    "planned": LIFECYCLE_UPCOMING,
    "rumored": LIFECYCLE_UPCOMING,
    "released": LIFECYCLE_FINISHED,
    "ended": LIFECYCLE_FINISHED,
    "canceled": LIFECYCLE_FINISHED,
}


class TMDBAdapter(ProviderAdapter):
    """Client for TMDB API"""

    name = PROVIDER_TMDB
    media_kinds = (MEDIA_KIND_MOVIE, MEDIA_KIND_SERIES)

    def __init__(self, *args, image_base_url: str = "https://image.tmdb.org/t/p/w500", language: str = "en-US",
                 **kwargs):
        super().__init__(*args, **kwargs)
        self.image_base_url = image_base_url.rstrip("/")
        self.language = language

    @classmethod
    def extra_options(cls, provider_settings):
        options = {}
        if provider_settings.get("image_base_url"):
            options["image_base_url"] = provider_settings["image_base_url"]
        if provider_settings.get("language"):
            options["language"] = provider_settings["language"]
        return options

    def _get(self, path: str, **params) -> Dict[str, Any]:
        if not self.api_key:
            raise UpstreamFetchException(self.name, "TMDB API key not configured")
        params.update({"api_key": self.api_key, "language": self.language})
        return self._request_json(path, params)

    @staticmethod
    def _segment(media_kind: str) -> str:
        return "movie" if media_kind == MEDIA_KIND_MOVIE else "tv"

    def search(self, query: str, media_kind: str) -> List[Dict[str, Any]]:
        self.require_kind(media_kind)
        data = self._get(f"/search/{self._segment(media_kind)}", query=query, page=1)
        return data.get("results", [])

    def get_by_id(self, external_id: str, media_kind: str) -> Dict[str, Any]:
        self.require_kind(media_kind)
        return self._get(f"/{self._segment(media_kind)}/{external_id}")

    def image_url(self, path):
        if not path:
            return None
        return f"{self.image_base_url}{path}"

    def to_essential(self, raw: Dict[str, Any], media_kind: str) -> Dict[str, Any]:
        # Search results only carry genre ids, details carry {id, name}
        genres = raw.get("genres") or []

        data = {
            "title": raw.get("title") or raw.get("name") or "",
            "description": raw.get("overview"),
            "coverImage": self.image_url(raw.get("poster_path")),
            "genres": genres,
            "averageRating": raw.get("vote_average"),
            "ratingCount": raw.get("vote_count"),
        }

        status = (raw.get("status") or "").lower()
        if media_kind == MEDIA_KIND_MOVIE:
            data.update(release_fields(raw.get("release_date")))
            data["runtime"] = raw.get("runtime")
            data["status"] = STATUS_MAP.get(status, LIFECYCLE_FINISHED)
        else:
            data.update(release_fields(raw.get("first_air_date")))
            run_times = raw.get("episode_run_time") or []
            data["runtime"] = run_times[0] if run_times else None
            data["episodes"] = raw.get("number_of_episodes")
            data["seasons"] = raw.get("number_of_seasons")
            data["episodesPerSeason"] = [
                season.get("episode_count") or 0
                for season in raw.get("seasons") or []
                if season.get("season_number", 0) > 0
            ]
            if raw.get("in_production") and status not in STATUS_MAP:
                data["status"] = LIFECYCLE_ONGOING
            else:
                data["status"] = STATUS_MAP.get(status, LIFECYCLE_FINISHED)
        return data
