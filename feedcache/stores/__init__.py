"""Data stores for persistence and caching.

Stores handle:
- Redis: the shared ordered key-value store (rankings, sessions, caches)
- PostgreSQL: inventory rows that the row scheduler copies into Redis

No ranking or scheduling logic in stores - that belongs in services.
"""
