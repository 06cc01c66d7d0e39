"""
Progress helpers for library entries: initial shape per media kind,
partial merges, game tasks and the status transition side effects.
"""
import math
from typing import Any, Dict, List, Optional

from constants import (
    COMPLETION_TOTALS,
    MEDIA_KIND_GAME,
    PROGRESS_FIELDS,
    STATUS_COMPLETED,
    STATUS_DROPPED,
    STATUS_IN_PROGRESS,
    STATUS_PLANNED,
)
from exceptions import ValidationException
from utils import isoformat, now_utc

NUMERIC_PROGRESS_FIELDS = {field for fields in PROGRESS_FIELDS.values() for field in fields} | {"percentage"}


def _coerce_count(field: str, value: Any):
    """Progress counters are non-negative numbers; percentage is capped at 100"""
    if isinstance(value, bool):
        raise ValueError("must be a number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValueError("must be a number")
    if not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("must be a number")
    if value < 0:
        raise ValueError("must not be negative")
    if field == "percentage" and value > 100:
        raise ValueError("must be between 0 and 100")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def normalize_tasks(tasks: Any, now=None) -> List[Dict[str, Any]]:
    if not isinstance(tasks, list):
        raise ValidationException("Invalid progress", details={"progress.tasks": "must be a list"})

    added_at = isoformat(now or now_utc())
    normalized = []
    errors = {}
    for index, task in enumerate(tasks):
        if isinstance(task, str):
            task = {"name": task}
        if not isinstance(task, dict):
            errors[f"progress.tasks[{index}]"] = "must be an object"
            continue

        name = str(task.get("name") or "").strip()
        if not name:
            errors[f"progress.tasks[{index}].name"] = "required"
            continue

        normalized.append({
            "name": name,
            "completed": bool(task.get("completed", False)),
            "added_at": task.get("added_at") or task.get("addedAt") or added_at,
        })

    if errors:
        raise ValidationException("Invalid progress", details=errors)
    return normalized


def merge_progress(media_kind: str, current: Optional[Dict], updates: Optional[Dict], now=None) -> Dict[str, Any]:
    """Overlay the keys present in updates onto a copy of current"""
    if updates is None:
        updates = {}
    if not isinstance(updates, dict):
        raise ValidationException("Invalid progress", details={"progress": "must be an object"})

    now = now or now_utc()
    progress = dict(current or {})
    errors = {}

    for key, value in updates.items():
        if key in ("last_updated", "lastUpdated"):
            continue

        if key == "tasks":
            if media_kind != MEDIA_KIND_GAME:
                errors["progress.tasks"] = "tasks are only tracked for games"
                continue
            progress["tasks"] = normalize_tasks(value, now)
        elif key in NUMERIC_PROGRESS_FIELDS:
            if value is None:
                progress.pop(key, None)
                continue
            try:
                progress[key] = _coerce_count(key, value)
            except ValueError as e:
                errors[f"progress.{key}"] = str(e)
        else:
            progress[key] = value

    if errors:
        raise ValidationException("Invalid progress", details=errors)

    progress["last_updated"] = isoformat(now)
    return progress


def build_initial_progress(media_kind: str, supplied: Optional[Dict] = None, now=None) -> Dict[str, Any]:
    base = {field: 0 for field in PROGRESS_FIELDS.get(media_kind, ["percentage"])}
    if media_kind == MEDIA_KIND_GAME:
        base["tasks"] = []
    return merge_progress(media_kind, base, supplied, now)


def fill_completed_progress(media_kind: str, progress: Optional[Dict], essential_data: Optional[Dict],
                            now=None) -> Dict[str, Any]:
    """
    Back-fill progress from the cache record totals when an entry is completed.
    Games mark every task done and never get a percentage.
    """
    progress = dict(progress or {})
    essential_data = essential_data or {}

    for field, total_key in COMPLETION_TOTALS.get(media_kind, {}).items():
        total = essential_data.get(total_key)
        if total:
            progress[field] = total

    if media_kind == MEDIA_KIND_GAME:
        progress["tasks"] = [dict(task, completed=True) for task in progress.get("tasks") or []]
    else:
        progress["percentage"] = 100

    progress["last_updated"] = isoformat(now or now_utc())
    return progress


def apply_status_transition(entry, status: str, essential_data: Optional[Dict], now=None):
    """
    Move an entry to status. Any target is accepted; timestamps and
    progress change according to the target only.
    """
    now = now or now_utc()
    entry.status = status

    if status == STATUS_PLANNED:
        entry.started_at = None
        entry.completed_at = None
        entry.dropped_at = None
    elif status == STATUS_IN_PROGRESS:
        if entry.started_at is None:
            entry.started_at = now
        entry.completed_at = None
        entry.dropped_at = None
    elif status == STATUS_COMPLETED:
        entry.completed_at = now
        entry.dropped_at = None
        entry.progress = fill_completed_progress(entry.media_kind, entry.progress, essential_data, now)
    elif status == STATUS_DROPPED:
        entry.dropped_at = now
        entry.completed_at = None

    return entry


def calculate_task_progress(tasks: Optional[List[Dict]]) -> Optional[Dict[str, int]]:
    if not tasks:
        return None
    total = len(tasks)
    completed = sum(1 for task in tasks if task.get("completed"))
    return {
        "completed": completed,
        "total": total,
        "percentage": int(completed * 100 / total + 0.5),
    }
