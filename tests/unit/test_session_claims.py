"""Tests for build_session_claims."""
from __future__ import annotations

import pytest

from aumos_gatekeeper.adapters.claims import build_session_claims
from aumos_gatekeeper.gatekeeper import Gatekeeper
from aumos_gatekeeper.models import Group, GroupRef, Role
from aumos_gatekeeper.permissions.resolver import ConditionalGrant
from aumos_gatekeeper.storage.memory import InMemoryStorage


@pytest.fixture()
async def gatekeeper() -> Gatekeeper:
    storage = InMemoryStorage()
    await storage.create_role(
        Role(id="engineer", name="Engineer", permissions=[ConditionalGrant("code.*")])
    )
    await storage.create_group(
        Group(id="engineering", name="Engineering", permissions=[ConditionalGrant("code.*")])
    )
    await storage.create_group(
        Group(id="backend-team", name="Backend", members=["alice", GroupRef("engineering")])
    )
    gatekeeper = Gatekeeper(storage)
    await gatekeeper.grant_permission("alice", "docs.read")
    await gatekeeper.assign_role("alice", "engineer")
    await gatekeeper.add_user_to_group("alice", "backend-team")
    return gatekeeper


class TestBuildSessionClaims:
    @pytest.mark.asyncio
    async def test_full_payload(self, gatekeeper: Gatekeeper) -> None:
        claims = await build_session_claims(gatekeeper, "alice")
        assert claims == {
            "sub": "alice",
            "permissions": ["docs.read", "code.*"],
            "roles": ["engineer"],
            "groups": ["backend-team", "engineering"],
        }

    @pytest.mark.asyncio
    async def test_sections_can_be_omitted(self, gatekeeper: Gatekeeper) -> None:
        claims = await build_session_claims(
            gatekeeper, "alice", include_roles=False, include_groups=False
        )
        assert set(claims) == {"sub", "permissions"}

    @pytest.mark.asyncio
    async def test_unknown_subject(self, gatekeeper: Gatekeeper) -> None:
        claims = await build_session_claims(gatekeeper, "nobody")
        assert claims == {"sub": "nobody", "permissions": [], "roles": [], "groups": []}
