"""Gatekeeper: the evaluation API and assignment management.

:class:`Gatekeeper` ties the pieces together. A check normalizes the
requested permission, aggregates the subject's effective grants through the
storage connector (optionally via a cache), and resolves them into a
:class:`~aumos_gatekeeper.permissions.resolver.Decision`.

Assignment mutations (roles, groups, direct grants) go through the
connector and invalidate the subject's cache entry before returning.

Example
-------
::

    storage = InMemoryStorage()
    gatekeeper = Gatekeeper(storage, strict_mode=True)
    await gatekeeper.grant_permission("alice", "docs.*")
    decision = await gatekeeper.has_permission("alice", "docs.read")
    assert decision.allowed
"""
from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone

from aumos_gatekeeper.aggregation.walker import GrantAggregator
from aumos_gatekeeper.audit import DecisionLogger
from aumos_gatekeeper.cache import PermissionCache, TTLPermissionCache
from aumos_gatekeeper.config import GatekeeperConfig
from aumos_gatekeeper.models import Group, Role, UserAssignment
from aumos_gatekeeper.permissions.conditions import ConditionEvaluator
from aumos_gatekeeper.permissions.pattern import (
    DEFAULT_SEPARATOR,
    PatternMatcher,
    normalize_permission,
)
from aumos_gatekeeper.permissions.resolver import (
    ConditionalGrant,
    Decision,
    PermissionResolver,
)
from aumos_gatekeeper.storage.base import StorageConnector

logger = logging.getLogger(__name__)


class Gatekeeper:
    """Hierarchical permission checks over a storage connector.

    Parameters
    ----------
    storage:
        Connector providing users, roles, groups and assignments.
    separator:
        Permission segment separator. Default ``"."``.
    wildcard_support:
        Whether ``*`` segments in grants are honoured.
    strict_mode:
        Deny whenever no grant matched.
    cache:
        Optional cache of effective grants. ``None`` disables caching.
    decision_logger:
        Optional JSONL log receiving every decision.
    """

    def __init__(
        self,
        storage: StorageConnector,
        *,
        separator: str = DEFAULT_SEPARATOR,
        wildcard_support: bool = True,
        strict_mode: bool = False,
        cache: PermissionCache | None = None,
        decision_logger: DecisionLogger | None = None,
    ) -> None:
        self._storage = storage
        self._separator = separator
        self._aggregator = GrantAggregator(storage)
        self._resolver = PermissionResolver(
            matcher=PatternMatcher(separator=separator, wildcard_support=wildcard_support),
            evaluator=ConditionEvaluator(),
            strict_mode=strict_mode,
        )
        self._cache = cache
        self._decision_logger = decision_logger
        # Bumped on every invalidation; a stale aggregation must not refill the cache.
        self._generations: dict[str, int] = {}
        self._epoch = 0

    @classmethod
    def from_config(cls, storage: StorageConnector, config: GatekeeperConfig) -> Gatekeeper:
        """Build a Gatekeeper from a validated :class:`GatekeeperConfig`."""
        cache: PermissionCache | None = None
        if config.cache.enabled:
            cache = TTLPermissionCache(
                ttl_seconds=config.cache.ttl_seconds,
                max_entries=config.cache.max_entries,
            )
        decision_logger = DecisionLogger(config.audit.log_path) if config.audit.enabled else None
        return cls(
            storage,
            separator=config.permission_separator,
            wildcard_support=config.wildcard_support,
            strict_mode=config.strict_mode,
            cache=cache,
            decision_logger=decision_logger,
        )

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    async def has_permission(
        self,
        subject_id: str,
        permission: str,
        context: Mapping[str, object] | None = None,
    ) -> Decision:
        """Decide whether *subject_id* holds *permission*.

        Parameters
        ----------
        subject_id:
            The subject being checked.
        permission:
            Requested permission; normalized before matching.
        context:
            Extra attributes for condition evaluation. ``subject_id`` and
            ``timestamp`` are filled in unless supplied.

        Returns
        -------
        Decision

        Raises
        ------
        StorageError
            If the connector fails. Failures never produce an allow.
        """
        if not isinstance(subject_id, str) or not subject_id:
            return self._invalid_subject(subject_id, permission)

        grants = await self.get_user_effective_permissions(subject_id)
        return self._decide(subject_id, permission, grants, context)

    async def has_permissions(
        self,
        subject_id: str,
        permissions: Sequence[str],
        context: Mapping[str, object] | None = None,
    ) -> dict[str, Decision]:
        """Check several permissions with a single aggregation.

        Returns
        -------
        dict[str, Decision]
            Keyed by the permission strings exactly as passed in.
        """
        if not isinstance(subject_id, str) or not subject_id:
            return {p: self._invalid_subject(subject_id, p) for p in permissions}

        grants = await self.get_user_effective_permissions(subject_id)
        return {p: self._decide(subject_id, p, grants, context) for p in permissions}

    async def get_user_effective_permissions(self, subject_id: str) -> list[ConditionalGrant]:
        """Return direct, role and group grants for *subject_id*."""
        if self._cache is not None:
            cached = self._cache.get(subject_id)
            if cached is not None:
                return cached

        generation = self._generation(subject_id)
        grants = await self._aggregator.effective_grants(subject_id)
        if self._cache is not None and self._generation(subject_id) == generation:
            self._cache.set(subject_id, grants)
        return grants

    async def get_user_roles(self, subject_id: str) -> list[Role]:
        """Return the subject's roles in assignment order."""
        return await self._aggregator.user_roles(subject_id)

    async def get_user_groups(self, subject_id: str) -> list[Group]:
        """Return every group reachable from the subject, de-duplicated by id."""
        return await self._aggregator.user_groups(subject_id)

    # ------------------------------------------------------------------
    # Assignment management
    # ------------------------------------------------------------------

    async def assign_role(self, subject_id: str, role_id: str) -> None:
        """Add *role_id* to the subject's roles (no-op if already present)."""
        assignment = await self._storage.get_user_assignment(subject_id)
        if assignment is None:
            await self._storage.create_user_assignment(
                UserAssignment(subject_id=subject_id, role_ids=[role_id])
            )
        elif role_id not in assignment.role_ids:
            await self._storage.update_user_assignment(
                subject_id, {"role_ids": [*assignment.role_ids, role_id]}
            )
        self._invalidate(subject_id)

    async def unassign_role(self, subject_id: str, role_id: str) -> None:
        """Remove *role_id* from the subject's roles."""
        assignment = await self._storage.get_user_assignment(subject_id)
        if assignment is None:
            return
        if role_id in assignment.role_ids:
            await self._storage.update_user_assignment(
                subject_id, {"role_ids": [r for r in assignment.role_ids if r != role_id]}
            )
        self._invalidate(subject_id)

    async def add_user_to_group(self, subject_id: str, group_id: str) -> None:
        """Add *group_id* to the subject's groups (no-op if already present)."""
        assignment = await self._storage.get_user_assignment(subject_id)
        if assignment is None:
            await self._storage.create_user_assignment(
                UserAssignment(subject_id=subject_id, group_ids=[group_id])
            )
        elif group_id not in assignment.group_ids:
            await self._storage.update_user_assignment(
                subject_id, {"group_ids": [*assignment.group_ids, group_id]}
            )
        self._invalidate(subject_id)

    async def remove_user_from_group(self, subject_id: str, group_id: str) -> None:
        """Remove *group_id* from the subject's groups."""
        assignment = await self._storage.get_user_assignment(subject_id)
        if assignment is None:
            return
        if group_id in assignment.group_ids:
            await self._storage.update_user_assignment(
                subject_id,
                {"group_ids": [g for g in assignment.group_ids if g != group_id]},
            )
        self._invalidate(subject_id)

    async def grant_permission(
        self,
        subject_id: str,
        grant: ConditionalGrant | Mapping[str, object] | str,
    ) -> ConditionalGrant:
        """Append a direct grant to the subject. Returns the stored grant.

        The grant's pattern is normalized before it is stored.
        """
        conditional = ConditionalGrant.coerce(grant)
        conditional = dataclasses.replace(
            conditional,
            pattern=normalize_permission(conditional.pattern, self._separator),
        )

        assignment = await self._storage.get_user_assignment(subject_id)
        if assignment is None:
            await self._storage.create_user_assignment(
                UserAssignment(subject_id=subject_id, direct_grants=[conditional])
            )
        else:
            await self._storage.update_user_assignment(
                subject_id, {"direct_grants": [*assignment.direct_grants, conditional]}
            )
        self._invalidate(subject_id)
        return conditional

    async def revoke_permission(self, subject_id: str, permission: str) -> None:
        """Remove every direct grant whose pattern equals *permission*."""
        assignment = await self._storage.get_user_assignment(subject_id)
        if assignment is None or not assignment.direct_grants:
            return

        target = normalize_permission(permission, self._separator)
        remaining = [g for g in assignment.direct_grants if g.pattern != target]
        await self._storage.update_user_assignment(subject_id, {"direct_grants": remaining})
        self._invalidate(subject_id)

    async def delete_user(self, subject_id: str) -> None:
        """Delete the subject's assignment and user record."""
        await self._storage.delete_user_assignment(subject_id)
        await self._storage.delete_user(subject_id)
        self._invalidate(subject_id)

    def clear_cache(self) -> None:
        """Drop every cached entry."""
        self._epoch += 1
        if self._cache is not None:
            self._cache.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _decide(
        self,
        subject_id: str,
        permission: str,
        grants: list[ConditionalGrant],
        context: Mapping[str, object] | None,
    ) -> Decision:
        required = (
            normalize_permission(permission, self._separator)
            if isinstance(permission, str)
            else ""
        )
        full_context: dict[str, object] = {
            "subject_id": subject_id,
            "timestamp": datetime.now(tz=timezone.utc),
            **(context or {}),
        }
        decision = self._resolver.decide(required, grants, full_context)
        if self._decision_logger is not None:
            self._decision_logger.record(subject_id, decision)
        return decision

    def _invalid_subject(self, subject_id: object, permission: object) -> Decision:
        logger.debug("Rejecting check for invalid subject id %r", subject_id)
        decision = Decision(
            allowed=False,
            permission=permission if isinstance(permission, str) else "",
            reason="Access denied: Invalid subject id",
        )
        if self._decision_logger is not None:
            self._decision_logger.record(str(subject_id), decision)
        return decision

    def _generation(self, subject_id: str) -> tuple[int, int]:
        return self._epoch, self._generations.get(subject_id, 0)

    def _invalidate(self, subject_id: str) -> None:
        self._generations[subject_id] = self._generations.get(subject_id, 0) + 1
        if self._cache is not None:
            self._cache.invalidate(subject_id)

    @property
    def storage(self) -> StorageConnector:
        """The underlying storage connector."""
        return self._storage

    @property
    def resolver(self) -> PermissionResolver:
        """The resolver used for every decision."""
        return self._resolver

    @property
    def strict_mode(self) -> bool:
        return self._resolver.strict_mode
