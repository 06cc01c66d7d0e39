#!/usr/bin/env python3
"""
Purge cache records nobody tracks and nobody has read for a while.

Usage:
  python3 scripts/purge_cache.py --kind anime [--days 30]
  python3 scripts/purge_cache.py --all [--days 30]

Records with library entries and records accessed within the window are kept.
"""

import sys
import argparse
import os

# Ensure app/ is importable
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
APP_DIR = os.path.join(ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from app import create_app  # noqa: E402
from constants import MEDIA_KINDS  # noqa: E402
from exceptions import MediaTrackException  # noqa: E402
from services import cache_service  # noqa: E402


def main(kinds, days):
    app = create_app()
    total = 0
    with app.app_context():
        for kind in kinds:
            try:
                deleted = cache_service.purge(kind, days)
            except MediaTrackException as e:
                print(f"Error purging {kind}: {e.message}")
                return 1
            print(f"{kind}: {deleted} record(s) deleted")
            total += deleted
    print(f"Done, {total} record(s) deleted")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--kind", choices=MEDIA_KINDS, help="Media kind to purge")
    group.add_argument("--all", action="store_true", help="Purge every media kind")
    parser.add_argument("--days", type=int, default=None, help="Minimum days since last access (default from settings)")
    args = parser.parse_args()
    sys.exit(main(MEDIA_KINDS if args.all else [args.kind], args.days))
