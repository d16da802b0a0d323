"""
Caller identity passed explicitly to every policy check and service call.

The identity is derived from the verified JWT 'sub' claim. There is no
module-level "current user": routes build a CallerIdentity per request and
hand it down.
"""

from dataclasses import dataclass
from typing import Any, Optional

from crm_backend.utils.identifiers import coerce_uuid


@dataclass(frozen=True)
class CallerIdentity:
    """
    Who is issuing a query.

    Attributes:
        user_id: Lowercase UUID of the caller (equivalent to auth.uid()),
                 or None for an anonymous caller.
    """
    user_id: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "CallerIdentity":
        return cls(user_id=None)

    @classmethod
    def from_user_id(cls, user_id: Any) -> "CallerIdentity":
        """
        Build an identity from a raw id.

        A non-UUID id (e.g. the legacy demo id "1") yields an anonymous
        caller, so it can never match an ownership column.
        """
        return cls(user_id=coerce_uuid(user_id))

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None
