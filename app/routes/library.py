"""
Library Routes - per-user tracking of cached titles
"""

from flask import Blueprint, request
from flask_login import current_user, login_required

from api_responses import success_response, handle_api_errors, paginated_response
from constants import DEFAULT_PER_PAGE, MAX_PER_PAGE
from services.library_service import LibraryService
from utils import pick

library_bp = Blueprint("library", __name__, url_prefix="/api/library")

# service field -> accepted request keys
UPDATE_FIELDS = {
    "status": ("status",),
    "user_rating": ("user_rating", "userRating"),
    "personal_notes": ("personal_notes", "personalNotes"),
    "progress": ("progress",),
    "started_at": ("started_at", "startedAt"),
    "completed_at": ("completed_at", "completedAt"),
    "dropped_at": ("dropped_at", "droppedAt"),
}


def library_service():
    """Library state for the user of this request"""
    return LibraryService(current_user.id)


@library_bp.route("", methods=["GET"])
@login_required
@handle_api_errors
def list_entries():
    """User library with pagination, newest first"""
    page = max(1, request.args.get("page", 1, type=int))
    per_page = min(max(1, request.args.get("per_page", DEFAULT_PER_PAGE, type=int)), MAX_PER_PAGE)
    service = library_service()
    items, total = service.list_entries(
        media_kind=pick(request.args, "media_kind", "mediaKind"),
        status=request.args.get("status"),
        page=page,
        per_page=per_page,
    )
    return paginated_response([entry.to_dict() for entry in items], total, page, per_page)


@library_bp.route("", methods=["POST"])
@login_required
@handle_api_errors
def add_entry():
    """Add a cached title to the user library"""
    data = request.get_json(silent=True) or {}
    entry = library_service().add_entry(
        cache_record_id=pick(data, "cache_record_id", "cacheRecordId"),
        status=data.get("status"),
        user_rating=pick(data, "user_rating", "userRating"),
        personal_notes=pick(data, "personal_notes", "personalNotes"),
        progress=data.get("progress"),
        provider=data.get("provider"),
        external_id=pick(data, "external_id", "externalId"),
        media_kind=pick(data, "media_kind", "mediaKind"),
    )
    return success_response(entry.to_dict(), status_code=201)


@library_bp.route("/stats", methods=["GET"])
@login_required
@handle_api_errors
def library_stats():
    """Counts by status and by media kind"""
    return success_response(library_service().stats())


@library_bp.route("/<int:entry_id>", methods=["GET"])
@login_required
@handle_api_errors
def get_entry(entry_id):
    return success_response(library_service().get_entry(entry_id).to_dict())


@library_bp.route("/<int:entry_id>", methods=["PUT", "PATCH"])
@login_required
@handle_api_errors
def update_entry(entry_id):
    """Partial update: only the fields present in the body change"""
    data = request.get_json(silent=True) or {}
    changes = {}
    for field, names in UPDATE_FIELDS.items():
        for name in names:
            if name in data:
                changes[field] = data[name]
                break
    entry = library_service().update_entry(entry_id, changes)
    return success_response(entry.to_dict())


@library_bp.route("/<int:entry_id>", methods=["DELETE"])
@login_required
@handle_api_errors
def delete_entry(entry_id):
    """Remove an entry; hand-entered titles nobody tracks anymore are deleted too"""
    result = library_service().delete_entry(entry_id)
    return success_response(result, message="Media removed successfully")
