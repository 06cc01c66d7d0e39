"""
Models package

One module per table:
- user.py / apitoken.py: accounts and bearer tokens
- cache_record.py: shared provider metadata
- library_entry.py: per-user tracking records
"""

from .user import User
from .apitoken import ApiToken
from .cache_record import CacheRecord
from .library_entry import LibraryEntry

__all__ = [
    "User",
    "ApiToken",
    "CacheRecord",
    "LibraryEntry",
]
