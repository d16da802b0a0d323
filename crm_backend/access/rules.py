"""
Named access rules.

A Rule is a predicate over (row, caller) paired with the SQL expression the
database evaluates for the same check. Policies are built from rules, so the
in-process evaluator and the rendered RLS policies come from one definition.

Rules only read the row mapping they are given. Rules that need a parent row
(chat messages -> chat room) read it from an embedded object, the shape a
PostgREST embedded select returns, e.g.:

    {"room_id": "...", "room": {"is_general": false, "created_by": "...",
                                "chat_participants": [{"user_id": "..."}]}}
"""

from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, Mapping, Optional

from crm_backend.access.identity import CallerIdentity
from crm_backend.utils.identifiers import coerce_uuid

Row = Mapping[str, Any]
Predicate = Callable[[Row, CallerIdentity], bool]


@dataclass(frozen=True)
class Rule:
    """A named predicate with its SQL rendering and the columns it reads."""
    name: str
    sql: str
    predicate: Predicate = field(compare=False)
    columns: FrozenSet[str] = frozenset()

    def __call__(self, row: Optional[Row], caller: CallerIdentity) -> bool:
        return bool(self.predicate(row or {}, caller))


def _is_owner(value: Any, caller: CallerIdentity) -> bool:
    # Anonymous callers never own anything, including null-owner rows
    if caller.user_id is None:
        return False
    owner = coerce_uuid(value)
    return owner is not None and owner == caller.user_id


def authenticated() -> Rule:
    """Caller has a verified identity."""
    return Rule(
        name="authenticated",
        sql="auth.uid() IS NOT NULL",
        predicate=lambda row, caller: caller.is_authenticated,
    )


def owned_by(column: str) -> Rule:
    """Row's owner column equals the caller."""
    return Rule(
        name=f"owned_by_{column}",
        sql=f"auth.uid() IS NOT NULL AND {column} = auth.uid()",
        predicate=lambda row, caller: _is_owner(row.get(column), caller),
        columns=frozenset({column}),
    )


def flag_set(column: str) -> Rule:
    """Boolean column is true (a null flag counts as false)."""
    return Rule(
        name=f"{column}_set",
        sql=f"{column} = true",
        predicate=lambda row, caller: row.get(column) is True,
        columns=frozenset({column}),
    )


def any_of(*rules: Rule) -> Rule:
    """Logical OR of rules."""
    return Rule(
        name="any_of(" + ", ".join(r.name for r in rules) + ")",
        sql=" OR ".join(f"({r.sql})" for r in rules),
        predicate=lambda row, caller: any(r(row, caller) for r in rules),
        columns=frozenset().union(*(r.columns for r in rules)),
    )


def all_of(*rules: Rule) -> Rule:
    """Logical AND of rules."""
    return Rule(
        name="all_of(" + ", ".join(r.name for r in rules) + ")",
        sql=" AND ".join(f"({r.sql})" for r in rules),
        predicate=lambda row, caller: all(r(row, caller) for r in rules),
        columns=frozenset().union(*(r.columns for r in rules)),
    )


def _room_open_to(room: Optional[Row], caller: CallerIdentity) -> bool:
    if not room or not caller.is_authenticated:
        return False
    if room.get("is_general") is True:
        return True
    if _is_owner(room.get("created_by"), caller):
        return True
    participants = room.get("chat_participants") or []
    return any(_is_owner(p.get("user_id"), caller) for p in participants)


def room_member() -> Rule:
    """Chat room is general, created by the caller, or has the caller as participant."""
    return Rule(
        name="room_member",
        sql=(
            "auth.uid() IS NOT NULL AND (is_general = true OR created_by = auth.uid() "
            "OR EXISTS (SELECT 1 FROM chat_participants cp "
            "WHERE cp.room_id = chat_rooms.id AND cp.user_id = auth.uid()))"
        ),
        predicate=lambda row, caller: _room_open_to(row, caller),
        columns=frozenset({"is_general", "created_by"}),
    )


def in_accessible_room() -> Rule:
    """Message belongs to a room the caller can read (see room_member)."""
    return Rule(
        name="in_accessible_room",
        sql=(
            "EXISTS (SELECT 1 FROM chat_rooms cr WHERE cr.id = chat_messages.room_id "
            "AND auth.uid() IS NOT NULL AND (cr.is_general = true OR cr.created_by = auth.uid() "
            "OR EXISTS (SELECT 1 FROM chat_participants cp "
            "WHERE cp.room_id = cr.id AND cp.user_id = auth.uid())))"
        ),
        predicate=lambda row, caller: _room_open_to(row.get("room"), caller),
        columns=frozenset({"room_id"}),
    )
