"""
Google Books client - books
"""
from typing import Any, Dict, List

from constants import MEDIA_KIND_BOOK, PROVIDER_GOOGLE_BOOKS
from providers.base import ProviderAdapter, lifecycle_from_release_date, release_fields

IMAGE_SIZES = ["thumbnail", "small", "medium", "large"]


class GoogleBooksAdapter(ProviderAdapter):
    """Client for Google Books API (key optional)"""

    name = PROVIDER_GOOGLE_BOOKS
    media_kinds = (MEDIA_KIND_BOOK,)

    def __init__(self, *args, lang_restrict: str = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.lang_restrict = lang_restrict

    @classmethod
    def extra_options(cls, provider_settings):
        return {"lang_restrict": provider_settings.get("lang_restrict") or None}

    def search(self, query: str, media_kind: str) -> List[Dict[str, Any]]:
        self.require_kind(media_kind)
        data = self._request_json("/volumes", {
            "q": query,
            "maxResults": 20,
            "langRestrict": self.lang_restrict,
            "key": self.api_key,
        })
        return data.get("items", [])

    def get_by_id(self, external_id: str, media_kind: str) -> Dict[str, Any]:
        self.require_kind(media_kind)
        return self._request_json(f"/volumes/{external_id}", {"key": self.api_key})

    @staticmethod
    def image_url(image_links):
        for size in IMAGE_SIZES:
            url = (image_links or {}).get(size)
            if url:
                return url.replace("http://", "https://")
        return None

    def to_essential(self, raw: Dict[str, Any], media_kind: str) -> Dict[str, Any]:
        info = raw.get("volumeInfo") or {}
        published = info.get("publishedDate")
        data = {
            "title": info.get("title") or "",
            "description": info.get("description"),
            "coverImage": self.image_url(info.get("imageLinks")),
            "genres": info.get("categories") or [],
            "averageRating": info.get("averageRating"),
            "ratingCount": info.get("ratingsCount"),
            "pageCount": info.get("pageCount"),
            "authors": info.get("authors") or [],
            "status": lifecycle_from_release_date(published),
        }
        data.update(release_fields(published))
        return data
