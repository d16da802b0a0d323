"""
Database access layer.

All user-facing queries go through a Supabase client carrying the caller's
JWT, so Postgres row level security stays authoritative. Services re-check
the same policies in-process via crm_backend.access.

Includes:
- Supabase client factory (per request, caller token)
- migrations: the schema-evolution layer that renders and dry-runs SQL
"""

from .client import get_supabase_client

__all__ = ["get_supabase_client"]
