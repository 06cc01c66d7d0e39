"""
Cache Routes - shared metadata store and provider lookups
"""

from flask import Blueprint, request
from flask_login import login_required

from api_responses import success_response, handle_api_errors
from auth import admin_required
from services import cache_service
from utils import pick

cache_bp = Blueprint("cache", __name__, url_prefix="/api/media")


@cache_bp.route("/cache", methods=["POST"])
@login_required
@handle_api_errors
def upsert_cache():
    """Create or merge a cache record from provider or hand-entered data"""
    data = request.get_json(silent=True) or {}
    record, was_cached = cache_service.upsert(
        pick(data, "provider"),
        pick(data, "external_id", "externalId"),
        pick(data, "media_kind", "mediaKind"),
        pick(data, "essential_data", "essentialData"),
    )
    return success_response(
        {
            "cache_record_id": record.id,
            "was_cached": was_cached,
            "cache_record": record.to_dict(),
        },
        status_code=200 if was_cached else 201,
    )


@cache_bp.route("/cache", methods=["GET"])
@login_required
@handle_api_errors
def read_cache():
    """Stored cache record for provider/external_id/media_kind"""
    args = request.args
    record = cache_service.read(
        pick(args, "provider"),
        pick(args, "external_id", "externalId"),
        pick(args, "media_kind", "mediaKind"),
    )
    return success_response(record.to_dict())


@cache_bp.route("/cache/purge", methods=["POST"])
@login_required
@admin_required
@handle_api_errors
def purge_cache():
    """Delete unreferenced records of a kind not accessed for N days"""
    data = request.get_json(silent=True) or {}
    deleted_count = cache_service.purge(
        pick(data, "media_kind", "mediaKind") or request.args.get("media_kind"),
        pick(data, "older_than_days", "olderThanDays", "days"),
    )
    return success_response({"deleted_count": deleted_count})


@cache_bp.route("/search/<provider>", methods=["GET"])
@login_required
@handle_api_errors
def search_provider(provider):
    """Search a provider; results are normalized previews"""
    results = cache_service.search(
        provider,
        pick(request.args, "media_kind", "mediaKind"),
        pick(request.args, "q", "query", default=""),
    )
    return success_response({"results": results, "total": len(results)})


@cache_bp.route("/<provider>/<media_kind>/<external_id>", methods=["GET"])
@login_required
@handle_api_errors
def fetch_media(provider, media_kind, external_id):
    """Read-through fetch, refreshing from the provider when stale"""
    record, source = cache_service.fetch_or_refresh(provider, external_id, media_kind)
    return success_response({"cache_record": record.to_dict(), "source": source})
