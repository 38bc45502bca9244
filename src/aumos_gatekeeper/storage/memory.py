"""In-process storage connector backed by id-indexed dictionaries.

Useful for tests, the CLI and small deployments that load their access
model from YAML. Every read and write goes through ``copy.deepcopy`` so
callers never share mutable state with the store.

Example
-------
::

    storage = InMemoryStorage()
    await storage.create_role(Role(id="viewer", name="Viewer",
                                   permissions=[ConditionalGrant("docs.read")]))
    role = await storage.get_role("viewer")
"""
from __future__ import annotations

import copy
import dataclasses
import logging
from collections.abc import Mapping
from typing import TypeVar

from aumos_gatekeeper.models import (
    Group,
    PermissionTemplate,
    Role,
    User,
    UserAssignment,
    utc_now,
)
from aumos_gatekeeper.storage.base import StorageError

logger = logging.getLogger(__name__)

_Entity = TypeVar("_Entity", User, Role, Group, UserAssignment, PermissionTemplate)

_IMMUTABLE_FIELDS: frozenset[str] = frozenset(["id", "subject_id", "created_at"])


class InMemoryStorage:
    """Dictionary-backed implementation of :class:`StorageConnector`."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._roles: dict[str, Role] = {}
        self._groups: dict[str, Group] = {}
        self._assignments: dict[str, UserAssignment] = {}
        self._templates: dict[str, PermissionTemplate] = {}

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        return self._get(self._users, user_id)

    async def create_user(self, user: User) -> User:
        return self._create(self._users, user.id, user, "create_user")

    async def update_user(self, user_id: str, updates: Mapping[str, object]) -> User:
        return self._update(self._users, user_id, updates, "update_user")

    async def delete_user(self, user_id: str) -> None:
        self._users.pop(user_id, None)

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def get_role(self, role_id: str) -> Role | None:
        return self._get(self._roles, role_id)

    async def create_role(self, role: Role) -> Role:
        return self._create(self._roles, role.id, role, "create_role")

    async def update_role(self, role_id: str, updates: Mapping[str, object]) -> Role:
        return self._update(self._roles, role_id, updates, "update_role")

    async def delete_role(self, role_id: str) -> None:
        self._roles.pop(role_id, None)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    async def get_group(self, group_id: str) -> Group | None:
        return self._get(self._groups, group_id)

    async def create_group(self, group: Group) -> Group:
        return self._create(self._groups, group.id, group, "create_group")

    async def update_group(self, group_id: str, updates: Mapping[str, object]) -> Group:
        return self._update(self._groups, group_id, updates, "update_group")

    async def delete_group(self, group_id: str) -> None:
        self._groups.pop(group_id, None)

    async def get_groups_by_user_id(self, user_id: str) -> list[Group]:
        """Return groups that list *user_id* as a direct member."""
        return [
            copy.deepcopy(group)
            for group in self._groups.values()
            if user_id in group.subject_members
        ]

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    async def get_user_assignment(self, subject_id: str) -> UserAssignment | None:
        return self._get(self._assignments, subject_id)

    async def create_user_assignment(self, assignment: UserAssignment) -> UserAssignment:
        return self._create(
            self._assignments,
            assignment.subject_id,
            assignment,
            "create_user_assignment",
        )

    async def update_user_assignment(
        self, subject_id: str, updates: Mapping[str, object]
    ) -> UserAssignment:
        return self._update(self._assignments, subject_id, updates, "update_user_assignment")

    async def delete_user_assignment(self, subject_id: str) -> None:
        self._assignments.pop(subject_id, None)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def get_template(self, template_id: str) -> PermissionTemplate | None:
        return self._get(self._templates, template_id)

    async def create_template(self, template: PermissionTemplate) -> PermissionTemplate:
        return self._create(self._templates, template.id, template, "create_template")

    async def update_template(
        self, template_id: str, updates: Mapping[str, object]
    ) -> PermissionTemplate:
        return self._update(self._templates, template_id, updates, "update_template")

    async def delete_template(self, template_id: str) -> None:
        self._templates.pop(template_id, None)

    async def list_templates(self) -> list[PermissionTemplate]:
        return [copy.deepcopy(t) for t in self._templates.values()]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _get(table: dict[str, _Entity], key: str) -> _Entity | None:
        record = table.get(key)
        return copy.deepcopy(record) if record is not None else None

    @staticmethod
    def _create(
        table: dict[str, _Entity], key: str, record: _Entity, operation: str
    ) -> _Entity:
        if key in table:
            raise StorageError(f"record {key!r} already exists", operation)
        table[key] = copy.deepcopy(record)
        logger.debug("%s: stored %r", operation, key)
        return copy.deepcopy(record)

    @staticmethod
    def _update(
        table: dict[str, _Entity],
        key: str,
        updates: Mapping[str, object],
        operation: str,
    ) -> _Entity:
        current = table.get(key)
        if current is None:
            raise StorageError(f"record {key!r} not found", operation)

        known = {f.name for f in dataclasses.fields(current)}
        invalid = sorted(set(updates) - (known - _IMMUTABLE_FIELDS))
        if invalid:
            raise ValueError(f"{operation}: cannot update fields {invalid}.")

        changes = {k: copy.deepcopy(v) for k, v in updates.items()}
        changes.setdefault("updated_at", utc_now())
        updated = dataclasses.replace(current, **changes)
        table[key] = updated
        return copy.deepcopy(updated)

    @property
    def counts(self) -> dict[str, int]:
        """Number of stored records per entity type."""
        return {
            "users": len(self._users),
            "roles": len(self._roles),
            "groups": len(self._groups),
            "assignments": len(self._assignments),
            "templates": len(self._templates),
        }
