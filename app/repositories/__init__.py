"""
Repositories package
Separate database queries from models

Each repository encapsulates database operations for a model:
- cache_record_repository.py
- library_entry_repository.py
- user_repository.py
- apitoken_repository.py

Usage:
    from repositories.cache_record_repository import CacheRecordRepository
    record = CacheRecordRepository.get_by_key("tmdb", "603", "movie")
"""
