# Services package.
#
# Each module encapsulates business logic and database access for one
# concern:
#
#   auth_service        : AuthenticationGate: credential checks, login, logout-all
#   revocation_service  : persistent deny-list of revoked tokens
#   rate_limiter        : per-author write/edit cooldowns and author locks
#   article_service     : board listings, write/edit/soft-delete of articles
#   board_service       : board creation and lookup
#   user_service        : registration, lookup and account removal
#
# Service functions accept an AsyncSession so that the router layer
# controls the transaction boundary via the ``get_db`` dependency; the
# article write/edit paths are the exception and commit under their
# author lock.
