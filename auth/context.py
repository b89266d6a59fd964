"""
auth/context.py -- Per-task security context.

The authorization gate needs to know who is calling a repository method
without every method growing a principal argument. The caller is installed
in a ContextVar for the duration of a block:

    with authenticated(principal):
        repo.find_by_id(1)

ContextVar values are scoped to the current thread / asyncio task, so two
concurrent requests never see each other's principal.

Layer rule: no imports from api/, core/, or things/.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from auth.models import Principal

_current_principal: ContextVar[Principal | None] = ContextVar("thinggate_principal", default=None)


def get_current_principal() -> Principal | None:
    """Return the principal installed for the current context, or None if anonymous."""
    return _current_principal.get()


@contextmanager
def authenticated(principal: Principal | None) -> Iterator[Principal | None]:
    """Install principal as the caller for the enclosed block.

    The previous value is restored on exit, including when the block raises.
    Passing None runs the block anonymously.
    """
    token = _current_principal.set(principal)
    try:
        yield principal
    finally:
        _current_principal.reset(token)
