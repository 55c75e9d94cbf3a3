"""
infinity_kb — session, authentication and access control core for Infinity KB.

Subpackages:
    auth           users, organizations, sessions, RBAC, auth service
    organizations  members, projects, access-request workflow
    storage        repository interface with in-memory and SQLite backends
    observability  structured logging
"""
__version__ = "0.1.0"
