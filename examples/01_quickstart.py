#!/usr/bin/env python3
"""Example: Quickstart for aumos-gatekeeper

Minimal working example: define a role and a nested group, assign them to
a subject, and check a few permissions.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install aumos-gatekeeper
"""
from __future__ import annotations

import asyncio

import aumos_gatekeeper as gk


async def main() -> None:
    print(f"aumos-gatekeeper version: {gk.__version__}")

    # Step 1: Seed storage with a role and two nested groups
    storage = gk.InMemoryStorage()
    await storage.create_role(
        gk.Role(id="engineer", name="Engineer", permissions=[gk.ConditionalGrant("code.*")])
    )
    await storage.create_group(
        gk.Group(
            id="engineering",
            name="Engineering",
            permissions=[gk.ConditionalGrant("engineering.*")],
        )
    )
    await storage.create_group(
        gk.Group(
            id="backend-team",
            name="Backend team",
            members=["alice", gk.GroupRef("engineering")],
        )
    )

    # Step 2: Assign them to alice
    gatekeeper = gk.Gatekeeper(storage, strict_mode=True)
    await gatekeeper.assign_role("alice", "engineer")
    await gatekeeper.add_user_to_group("alice", "backend-team")

    # Step 3: Check permissions
    print("\nPermission checks:")
    for permission in ["code.read", "engineering.access", "billing.view"]:
        decision = await gatekeeper.has_permission("alice", permission)
        icon = "ALLOW" if decision.allowed else "DENY"
        print(f"  [{icon}] {permission}: {decision.reason}")


if __name__ == "__main__":
    asyncio.run(main())
