# Repositories package.
#
# Persistence contracts and their interchangeable implementations:
#
#   base            - PostRepository / UserRepository / SessionStore protocols
#   memory          - process-local variants guarded by asyncio locks
#   sql             - SQLAlchemy variants bound to a request's AsyncSession
#   redis_sessions  - SessionStore on Redis with per-key TTL
#
# The concrete variant used by a request is chosen in ``app.dependencies``
# from ``settings.STORAGE_BACKEND`` and ``settings.SESSION_BACKEND``.
