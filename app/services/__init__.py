# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# the business operations for a single domain aggregate:
#
#   post_service  - posts, comments and votes
#   user_service  - registration and login
#
# Service functions receive the repositories and session manager chosen
# for the request by ``app.dependencies``, so they run unchanged against
# the in-memory and the database backends.
