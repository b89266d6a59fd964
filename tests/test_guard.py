"""Unit tests for auth/guard.py and auth/context.py.

Covers:
- has_role / has_any_role decisions, including the ROLE_ prefix
- check() raising AuthenticationRequired vs AccessDenied
- pre_authorize on functions: body never runs on denial
- pre_authorize on classes: inherited methods guarded, permit_all exempt,
  method-level and class-level guards both evaluated
- authenticated() restores the previous caller, even on error
"""

import pytest

from auth.context import authenticated, get_current_principal
from auth.guard import (
    AccessDenied,
    AuthenticationRequired,
    check,
    has_any_role,
    has_role,
    permit_all,
    pre_authorize,
    requirements_of,
)
from auth.models import Principal

ALICE = Principal(username="alice", roles=frozenset({"USER"}))
ROOT = Principal(username="root", roles=frozenset({"USER", "ADMIN"}))


class TestRequirements:
    def test_has_role_matches_granted_role(self) -> None:
        assert has_role("USER")(ALICE)

    def test_has_role_rejects_missing_role(self) -> None:
        assert not has_role("ADMIN")(ALICE)

    def test_has_role_accepts_role_prefix(self) -> None:
        """hasRole('ROLE_USER') and hasRole('USER') are the same check."""
        assert has_role("ROLE_USER")(ALICE)
        assert str(has_role("ROLE_USER")) == "hasRole('USER')"

    def test_has_role_is_case_sensitive(self) -> None:
        assert not has_role("user")(ALICE)
        assert not has_role(" USER")(ALICE)
        assert not has_any_role("user", "admin")(ROOT)

    def test_has_any_role_is_an_intersection(self) -> None:
        req = has_any_role("ADMIN", "AUDITOR")
        assert req(ROOT)
        assert not req(ALICE)

    def test_has_any_role_requires_a_role(self) -> None:
        with pytest.raises(ValueError):
            has_any_role()

    def test_check_anonymous(self) -> None:
        with pytest.raises(AuthenticationRequired):
            check(has_role("USER"), None)

    def test_check_denied_names_requirement_and_user(self) -> None:
        with pytest.raises(AccessDenied) as excinfo:
            check(has_role("ADMIN"), ALICE)
        assert excinfo.value.username == "alice"
        assert str(excinfo.value.requirement) == "hasRole('ADMIN')"

    def test_check_returns_principal(self) -> None:
        assert check(has_role("ADMIN"), ROOT) is ROOT


class TestFunctionGuard:
    def test_denied_call_never_runs_body(self) -> None:
        calls = []

        @pre_authorize(has_role("ADMIN"))
        def touch(x):
            calls.append(x)
            return x

        with authenticated(ALICE):
            with pytest.raises(AccessDenied):
                touch(1)
        assert calls == []

    def test_allowed_call_returns_result(self) -> None:
        @pre_authorize(has_role("ADMIN"))
        def double(x):
            return x * 2

        with authenticated(ROOT):
            assert double(21) == 42

    def test_anonymous_call_requires_authentication(self) -> None:
        @pre_authorize(has_role("USER"))
        def noop():
            return None

        with pytest.raises(AuthenticationRequired):
            noop()

    def test_wrapper_keeps_name_and_lists_requirements(self) -> None:
        @pre_authorize(has_role("A"))
        @pre_authorize(has_role("B"))
        def op():
            """Docstring."""

        assert op.__name__ == "op"
        assert op.__doc__ == "Docstring."
        assert [str(r) for r in requirements_of(op)] == ["hasRole('A')", "hasRole('B')"]

    def test_stacked_guards_are_anded(self) -> None:
        @pre_authorize(has_role("USER"))
        @pre_authorize(has_role("ADMIN"))
        def op():
            return "ok"

        with authenticated(ALICE):
            with pytest.raises(AccessDenied) as excinfo:
                op()
        assert str(excinfo.value.requirement) == "hasRole('ADMIN')"
        with authenticated(ROOT):
            assert op() == "ok"


class _Base:
    def inherited(self):
        return "inherited"

    @staticmethod
    def helper():
        return "helper"


@pre_authorize(has_role("ADMIN"))
class _Guarded(_Base):
    def own(self):
        return "own"

    @pre_authorize(has_role("USER"))
    def double_guarded(self):
        return "double"

    @permit_all
    def open(self):
        return "open"

    def _private(self):
        return "private"


class TestClassGuard:
    def test_inherited_method_is_guarded(self) -> None:
        with authenticated(ALICE):
            with pytest.raises(AccessDenied):
                _Guarded().inherited()

    def test_base_class_is_not_modified(self) -> None:
        with authenticated(ALICE):
            assert _Base().inherited() == "inherited"

    def test_own_method_is_guarded(self) -> None:
        with authenticated(ALICE):
            with pytest.raises(AccessDenied):
                _Guarded().own()
        with authenticated(ROOT):
            assert _Guarded().own() == "own"

    def test_method_guard_and_class_guard_both_apply(self) -> None:
        """ALICE passes the method guard (USER) but not the class guard (ADMIN)."""
        assert [str(r) for r in requirements_of(_Guarded.double_guarded)] == [
            "hasRole('ADMIN')",
            "hasRole('USER')",
        ]
        with authenticated(ALICE):
            with pytest.raises(AccessDenied):
                _Guarded().double_guarded()
        with authenticated(ROOT):
            assert _Guarded().double_guarded() == "double"

    def test_permit_all_and_private_methods_are_open(self) -> None:
        obj = _Guarded()
        assert obj.open() == "open"
        assert obj._private() == "private"

    def test_staticmethod_left_alone(self) -> None:
        assert _Guarded.helper() == "helper"


class TestSecurityContext:
    def test_anonymous_by_default(self) -> None:
        assert get_current_principal() is None

    def test_authenticated_installs_and_restores(self) -> None:
        with authenticated(ALICE):
            assert get_current_principal() is ALICE
            with authenticated(ROOT):
                assert get_current_principal() is ROOT
            assert get_current_principal() is ALICE
        assert get_current_principal() is None

    def test_restored_after_exception(self) -> None:
        with pytest.raises(RuntimeError):
            with authenticated(ALICE):
                raise RuntimeError("boom")
        assert get_current_principal() is None
