"""
Access-control layer.

Explicit, storage-independent rendition of the database's row-level security:
policies are composed from named rules and evaluated as a pure function of
(table, verb, caller, row). The same definitions render the SQL policies used
by the migrations package.
"""

from .evaluator import RowLevelSecurityError, enforce_write, filter_visible, is_allowed
from .identity import CallerIdentity
from .policies import Policy, Verb
from .registry import OWNER_COLUMNS, TABLE_POLICIES, policies_for

__all__ = [
    "CallerIdentity",
    "Policy",
    "Verb",
    "RowLevelSecurityError",
    "is_allowed",
    "filter_visible",
    "enforce_write",
    "policies_for",
    "TABLE_POLICIES",
    "OWNER_COLUMNS",
]
