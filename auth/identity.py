"""
auth/identity.py -- In-memory identity provider.

The application knows exactly one principal, defined at startup. It is not a
module-level global: the credentials are read from Settings into an explicit
IdentityConfig, and build_identity_provider() hands that config to an
InMemoryIdentityProvider which the app keeps on app.state.

The provider has no create/update/delete operations. Passwords are bcrypt
hashed at construction; the plaintext is not retained.

Timing equalization:
  authenticate() always runs one bcrypt comparison, against a dummy hash when
  the username is unknown, so response time does not reveal whether a
  username exists.

Layer rule: no imports from api/ or things/. core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from auth.models import Principal
from auth.tokens import hash_password, verify_password
from core.config import Settings

logger = logging.getLogger("thinggate.auth.identity")

# Computed once at module load so the first unknown-username login is not
# measurably slower than later ones.
_DUMMY_HASH: str = hash_password("thinggate_timing_dummy")


@dataclass(frozen=True)
class IdentityConfig:
    """Static credential/role definition for one principal."""

    username: str
    password: str
    roles: tuple[str, ...] = ("USER",)

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityConfig":
        return cls(
            username=settings.identity_username,
            password=settings.identity_password,
            roles=tuple(settings.identity_roles),
        )


class InMemoryIdentityProvider:
    """Read-only store of principals keyed by username.

    Usage:
        provider = InMemoryIdentityProvider([IdentityConfig("user", "password", ("USER",))])
        principal = provider.authenticate("user", "password")
    """

    def __init__(self, configs: Iterable[IdentityConfig]) -> None:
        self._principals: dict[str, Principal] = {}
        for config in configs:
            if config.username in self._principals:
                raise ValueError(f"Duplicate username: {config.username!r}")
            self._principals[config.username] = Principal(
                username=config.username,
                roles=frozenset(config.roles),
                hashed_password=hash_password(config.password),
            )

    def __len__(self) -> int:
        return len(self._principals)

    def usernames(self) -> list[str]:
        return sorted(self._principals)

    def get(self, username: str) -> Principal | None:
        """Look up a principal by exact (case-sensitive) username."""
        return self._principals.get(username)

    def authenticate(self, username: str, password: str) -> Principal | None:
        """Return the principal if the password matches, None otherwise.

        Always runs bcrypt, whether or not the user exists. Do NOT return
        early before the comparison.
        """
        principal = self._principals.get(username)
        if principal is None or principal.hashed_password is None:
            verify_password(password, _DUMMY_HASH)
            return None
        if not verify_password(password, principal.hashed_password):
            return None
        return principal


def build_identity_provider(settings: Settings) -> InMemoryIdentityProvider:
    """Build the startup provider holding the single configured principal."""
    config = IdentityConfig.from_settings(settings)
    provider = InMemoryIdentityProvider([config])
    logger.info("Identity provider ready (username=%s roles=%s)", config.username, ",".join(config.roles))
    return provider
