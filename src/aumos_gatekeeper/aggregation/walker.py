"""Flattening of roles and nested groups into a subject's effective grants.

The walker reads a subject's :class:`UserAssignment` and then fetches its
roles and groups through the storage connector. Groups are followed
through their :class:`GroupRef` members, depth-first, with a visited set of
group ids that lives for one top-level call. A group id is processed at
most once per call, whether it is reached through a cycle, through two
different parents, or listed twice in the assignment.

Missing assignments, roles and groups contribute nothing; they are never an
error. Storage failures propagate unchanged.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from aumos_gatekeeper.models import Group, Role
from aumos_gatekeeper.permissions.resolver import ConditionalGrant
from aumos_gatekeeper.storage.base import StorageConnector

logger = logging.getLogger(__name__)


class GrantAggregator:
    """Builds effective grant lists, role lists and group lists for subjects.

    Parameters
    ----------
    storage:
        Connector used for every lookup. Nothing is retained between calls.
    """

    def __init__(self, storage: StorageConnector) -> None:
        self._storage = storage

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def effective_grants(self, subject_id: str) -> list[ConditionalGrant]:
        """Return the subject's grants: direct, then roles, then groups.

        Parameters
        ----------
        subject_id:
            The subject whose grants are collected.

        Returns
        -------
        list[ConditionalGrant]
            Empty when the subject has no assignment.
        """
        assignment = await self._storage.get_user_assignment(subject_id)
        if assignment is None:
            return []

        grants: list[ConditionalGrant] = list(assignment.direct_grants)
        for role in await self._fetch_roles(assignment.role_ids):
            grants.extend(role.permissions)
        for group in await self.walk_groups(assignment.group_ids):
            grants.extend(group.permissions)

        logger.debug(
            "Aggregated %d grants for subject=%s (roles=%d groups=%d)",
            len(grants),
            subject_id,
            len(assignment.role_ids),
            len(assignment.group_ids),
        )
        return grants

    async def user_roles(self, subject_id: str) -> list[Role]:
        """Return the subject's roles in assignment order, skipping missing ones."""
        assignment = await self._storage.get_user_assignment(subject_id)
        if assignment is None:
            return []
        return await self._fetch_roles(assignment.role_ids)

    async def user_groups(self, subject_id: str) -> list[Group]:
        """Return every group reachable from the subject, each id once."""
        assignment = await self._storage.get_user_assignment(subject_id)
        if assignment is None:
            return []
        return await self.walk_groups(assignment.group_ids)

    async def walk_groups(self, group_ids: Iterable[str]) -> list[Group]:
        """Visit groups depth-first from *group_ids*, following subgroups.

        The traversal uses an explicit stack, so arbitrarily deep chains do
        not consume interpreter stack. Visiting order is pre-order: a group
        comes before its subgroups, and siblings keep their listed order.
        """
        visited: set[str] = set()
        found: list[Group] = []
        stack: list[str] = list(reversed(list(group_ids)))

        while stack:
            group_id = stack.pop()
            if group_id in visited:
                continue
            visited.add(group_id)

            group = await self._storage.get_group(group_id)
            if group is None:
                logger.debug("Group %s not found; skipping", group_id)
                continue

            found.append(group)
            stack.extend(reversed(group.subgroup_ids))

        return found

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fetch_roles(self, role_ids: list[str]) -> list[Role]:
        # Independent reads; gather keeps the listed order.
        results = await asyncio.gather(
            *(self._storage.get_role(r) for r in role_ids), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return [role for role in results if role is not None]  # type: ignore[misc]
