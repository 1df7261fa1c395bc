"""
Database Infrastructure Package for Billing Sync

Exports database utilities, models, and repositories.
"""

from billing_sync.infrastructure.db.database import (
    DatabaseManager,
    build_database_url,
    get_db_manager,
    get_session,
    init_db,
    close_db,
)

from billing_sync.infrastructure.db.dependencies import (
    SessionDep,
    get_subscription_repository,
    get_profile_repository,
    SubscriptionRepoDep,
    ProfileRepoDep,
)


__all__ = [
    # Database management
    "DatabaseManager",
    "build_database_url",
    "get_db_manager",
    "get_session",
    "init_db",
    "close_db",
    # Dependencies
    "SessionDep",
    "get_subscription_repository",
    "get_profile_repository",
    "SubscriptionRepoDep",
    "ProfileRepoDep",
]
