"""
auth/guard.py -- Method-level authorization gate.

Pattern: Decorator / Interceptor. pre_authorize() wraps a callable so that a
Requirement is evaluated against the current principal (auth/context.py)
BEFORE the wrapped body runs. On denial nothing below the gate executes:
no query is issued, no row is read, nothing is written.

Two levels, both enforced:
  @pre_authorize(req) on a class wraps every public method the class exposes,
      inherited ones included.
  @pre_authorize(req) on a method wraps that method.
  A method carrying its own guard inside a guarded class is checked twice,
  class guard first, and both must pass.

@permit_all exempts a method from a class-level guard (infrastructure such as
health probes and shutdown). It does not exempt it from a method-level guard.

A denial depends only on (caller roles, requirement). The arguments of the
call -- e.g. the id being fetched -- are never consulted, so a denied lookup
looks the same whether or not the row exists.

The gate does not log and does not retry. Translating errors into HTTP
responses is the api/ layer's job.

Layer rule: no imports from api/, core/, or things/.
"""

from __future__ import annotations

import functools
import inspect
import types
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from auth.context import get_current_principal
from auth.models import Principal, normalize_role

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class SecurityError(Exception):
    """Base class for authentication and authorization failures."""


class AuthenticationRequired(SecurityError):
    """Raised when a guarded operation is invoked with no principal in context."""

    def __init__(self) -> None:
        super().__init__("Authentication required.")


class AccessDenied(SecurityError):
    """Raised when the caller's roles do not satisfy a requirement."""

    def __init__(self, requirement: "Requirement", username: str) -> None:
        self.requirement = requirement
        self.username = username
        super().__init__(f"Access denied for {username}: requires {requirement}")


# ---------------------------------------------------------------------------
# Requirements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Requirement:
    """A named predicate over a principal."""

    expression: str
    predicate: Callable[[Principal], bool]

    def __call__(self, principal: Principal) -> bool:
        return self.predicate(principal)

    def __str__(self) -> str:
        return self.expression


def has_role(role: str) -> Requirement:
    """Require that the caller holds role (with or without the ROLE_ prefix)."""
    name = normalize_role(role)
    return Requirement(f"hasRole('{name}')", lambda principal: principal.has_role(name))


def has_any_role(*roles: str) -> Requirement:
    """Require that the caller's roles intersect the given set."""
    names = tuple(normalize_role(r) for r in roles)
    if not names:
        raise ValueError("has_any_role() needs at least one role")
    quoted = ", ".join(f"'{n}'" for n in names)
    return Requirement(f"hasAnyRole({quoted})", lambda principal: bool(principal.roles & set(names)))


def check(requirement: Requirement, principal: Principal | None) -> Principal:
    """Evaluate requirement for principal; return the principal on success."""
    if principal is None:
        raise AuthenticationRequired()
    if not requirement(principal):
        raise AccessDenied(requirement, principal.username)
    return principal


# ---------------------------------------------------------------------------
# Decorators
# ---------------------------------------------------------------------------


def permit_all(func: T) -> T:
    """Exclude func from class-level guards."""
    func.__permit_all__ = True
    return func


def pre_authorize(requirement: Requirement) -> Callable[[T], T]:
    """Guard a function, or every public method of a class, with requirement."""

    def decorate(target: T) -> T:
        if isinstance(target, type):
            return _secure_class(target, requirement)
        if callable(target):
            return _secure_function(target, requirement)
        raise TypeError(f"pre_authorize cannot decorate {target!r}")

    return decorate


def requirements_of(func: Any) -> tuple[Requirement, ...]:
    """Return the requirements applied to func, outermost first."""
    return getattr(func, "__requirements__", ())


def _secure_function(func: Callable, requirement: Requirement) -> Callable:
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        check(requirement, get_current_principal())
        return func(*args, **kwargs)

    # Outer guard first: it is the one evaluated first.
    wrapper.__requirements__ = (requirement, *requirements_of(func))
    return wrapper


def _secure_class(cls: type, requirement: Requirement) -> type:
    for name in dir(cls):
        if name.startswith("_"):
            continue
        raw = inspect.getattr_static(cls, name)
        # Plain functions only: staticmethod, classmethod and property objects
        # are left alone.
        if not isinstance(raw, types.FunctionType):
            continue
        if getattr(raw, "__permit_all__", False):
            continue
        setattr(cls, name, _secure_function(raw, requirement))
    return cls
