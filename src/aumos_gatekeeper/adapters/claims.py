"""Session/token claims adapter.

Identity frameworks usually want a subject's permissions, roles and groups
serialised into a session or token payload. This adapter builds that
payload from the Gatekeeper aggregation API only. It performs no matching
or condition evaluation; checks must still go through
:meth:`Gatekeeper.has_permission`.
"""
from __future__ import annotations

from aumos_gatekeeper.gatekeeper import Gatekeeper


async def build_session_claims(
    gatekeeper: Gatekeeper,
    subject_id: str,
    include_permissions: bool = True,
    include_roles: bool = True,
    include_groups: bool = True,
) -> dict[str, object]:
    """Return ``{"sub", "permissions", "roles", "groups"}`` for *subject_id*.

    Omitted sections are left out of the payload. Storage errors propagate.

    Example
    -------
    ::

        claims = await build_session_claims(gatekeeper, "alice", include_groups=False)
        # {"sub": "alice", "permissions": ["code.*"], "roles": ["engineer"]}
    """
    claims: dict[str, object] = {"sub": subject_id}
    if include_permissions:
        grants = await gatekeeper.get_user_effective_permissions(subject_id)
        claims["permissions"] = list(dict.fromkeys(g.pattern for g in grants))
    if include_roles:
        claims["roles"] = [r.id for r in await gatekeeper.get_user_roles(subject_id)]
    if include_groups:
        claims["groups"] = [g.id for g in await gatekeeper.get_user_groups(subject_id)]
    return claims
