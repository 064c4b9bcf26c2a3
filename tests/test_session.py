"""
Tests for session context and user profiles
"""
import random

import pytest

from src.auth.names import ADJECTIVES, FIRST_NAMES, generate_display_name
from src.auth.session import SessionContext, SessionResolver, require_admin
from src.core.errors import AuthorizationError
from src.database.models import UserRole


class TestSessionContext:

    def test_roles(self):
        assert SessionContext("a", role=UserRole.ADMIN).is_admin
        assert SessionContext("m", role=UserRole.MODERATOR).is_admin
        assert not SessionContext("u").is_admin

    def test_require_admin(self, user_ctx, admin_ctx):
        require_admin(admin_ctx)
        with pytest.raises(AuthorizationError):
            require_admin(user_ctx)


class TestSessionResolver:

    def test_unknown_user_is_plain_user(self, db_session):
        ctx = SessionResolver(db_session).resolve("ghost")

        assert ctx.user_id == "ghost"
        assert ctx.role == UserRole.USER

    def test_register_is_idempotent(self, db_session):
        resolver = SessionResolver(db_session)
        first = resolver.register("u1", email="u1@example.ie", display_name="Sage")
        second = resolver.register("u1", email="other@example.ie")

        assert first.id == second.id
        assert second.email == "u1@example.ie"
        assert second.display_name == "Sage"

    def test_register_generates_display_name(self, db_session):
        user = SessionResolver(db_session).register("u2")
        assert user.display_name

    def test_role_change_applies_on_next_resolve(self, db_session):
        resolver = SessionResolver(db_session)
        resolver.register("u3")
        resolver.set_role("u3", UserRole.ADMIN)

        assert resolver.resolve("u3").is_admin


class TestDisplayNames:

    def test_names_come_from_lists(self):
        rng = random.Random(7)
        for _ in range(50):
            name = generate_display_name(rng)
            assert name in FIRST_NAMES or any(
                name == f"{adj}{first}" for adj in ADJECTIVES for first in FIRST_NAMES
            )
