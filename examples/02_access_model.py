#!/usr/bin/env python3
"""Example: Loading an access model from YAML

Loads roles, groups and assignments from a YAML document, then evaluates
conditional grants, an explicit deny and session claims.

Usage:
    python examples/02_access_model.py

Requirements:
    pip install aumos-gatekeeper
"""
from __future__ import annotations

import asyncio

import aumos_gatekeeper as gk

ACCESS_MODEL = """
version: "1.0"
roles:
  - id: marketer
    permissions:
      - permission: social-media.post
groups:
  - id: marketing
    permissions:
      - permission: campaigns.*
  - id: contractors
    permissions:
      - permission: campaigns.budget
        effect: deny
assignments:
  - subject_id: dana
    role_ids: [marketer]
    group_ids: [marketing, contractors]
    direct_grants:
      - permission: reports.view
        conditions:
          - attribute: attributes.region
            operator: in
            value: [eu, us]
"""


async def main() -> None:
    storage = gk.InMemoryStorage()
    counts = await gk.AccessModelLoader().load_from_yaml_string(storage, ACCESS_MODEL)
    print(f"Loaded: {counts}")

    gatekeeper = gk.Gatekeeper(storage, cache=gk.TTLPermissionCache(ttl_seconds=60))

    checks = [
        ("social-media.post", None),
        ("campaigns.create", None),
        ("campaigns.budget", None),
        ("reports.view", {"attributes": {"region": "eu"}}),
        ("reports.view", {"attributes": {"region": "apac"}}),
    ]
    print("\nPermission checks for dana:")
    for permission, context in checks:
        decision = await gatekeeper.has_permission("dana", permission, context)
        icon = "ALLOW" if decision.allowed else "DENY"
        suffix = f" with {context}" if context else ""
        print(f"  [{icon}] {permission}{suffix}: {decision.reason}")

    claims = await gk.build_session_claims(gatekeeper, "dana")
    print(f"\nSession claims: {claims}")


if __name__ == "__main__":
    asyncio.run(main())
