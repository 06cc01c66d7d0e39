"""
Provider adapters - one client per metadata provider.

Adapters are created lazily from settings and cached per provider.
The manual provider has no adapter.
"""
import threading

from constants import PROVIDER_GOOGLE_BOOKS, PROVIDER_JIKAN, PROVIDER_MANUAL, PROVIDER_RAWG, PROVIDER_TMDB
from exceptions import ValidationException
from providers.base import ProviderAdapter
from providers.google_books import GoogleBooksAdapter
from providers.jikan import JikanAdapter
from providers.rawg import RAWGAdapter
from providers.tmdb import TMDBAdapter
from services.normalizer import canonical_provider

ADAPTER_CLASSES = {
    PROVIDER_TMDB: TMDBAdapter,
    PROVIDER_JIKAN: JikanAdapter,
    PROVIDER_RAWG: RAWGAdapter,
    PROVIDER_GOOGLE_BOOKS: GoogleBooksAdapter,
}

_adapters = {}
_adapters_lock = threading.Lock()


def get_provider_adapter(provider) -> ProviderAdapter:
    name = canonical_provider(provider)
    if name == PROVIDER_MANUAL:
        raise ValidationException("Manual titles have no metadata provider",
                                  details={"provider": "manual provider cannot be queried"})

    with _adapters_lock:
        adapter = _adapters.get(name)
        if adapter is None:
            adapter = ADAPTER_CLASSES[name].from_settings()
            _adapters[name] = adapter
        return adapter


def register_provider_adapter(provider, adapter):
    """Replace the adapter used for provider"""
    name = canonical_provider(provider)
    with _adapters_lock:
        _adapters[name] = adapter


def reset_provider_adapters():
    with _adapters_lock:
        _adapters.clear()


__all__ = [
    "ProviderAdapter",
    "get_provider_adapter",
    "register_provider_adapter",
    "reset_provider_adapters",
]
