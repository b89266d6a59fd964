"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class. Principal carries identity and granted roles; the gate
in auth/guard.py does the deciding.

Role naming follows the "ROLE_" authority convention: a principal granted
role "USER" holds authority "ROLE_USER", and has_role("USER") and
has_role("ROLE_USER") are the same question.

Layer rule: no imports from api/, core/, or things/.
"""

from __future__ import annotations

from dataclasses import dataclass, field

ROLE_PREFIX = "ROLE_"


def normalize_role(role: str) -> str:
    """Return the bare role name: "ROLE_USER" becomes "USER".

    Only the prefix is removed. Role names are case-sensitive and are not
    trimmed, so "bogus" and " BOGUS" are different roles from "BOGUS".
    """
    if role.startswith(ROLE_PREFIX):
        return role[len(ROLE_PREFIX) :]
    return role


@dataclass(frozen=True)
class Principal:
    """An authenticated identity.

    hashed_password is the bcrypt hash held by the identity provider. It is
    never part of any token or API response.
    """

    username: str
    roles: frozenset[str] = field(default_factory=frozenset)
    hashed_password: str | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", frozenset(normalize_role(r) for r in self.roles if r))

    @property
    def authorities(self) -> frozenset[str]:
        return frozenset(f"{ROLE_PREFIX}{r}" for r in self.roles)

    def has_role(self, role: str) -> bool:
        return normalize_role(role) in self.roles
