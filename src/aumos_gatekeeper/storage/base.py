"""Storage connector interface consumed by the aggregation layer.

Every operation is a coroutine. Getters return ``None`` for a missing id;
raising is reserved for genuine I/O failure, reported as
:class:`StorageError`. Updates take a mapping of field name to new value.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from aumos_gatekeeper.models import (
    Group,
    PermissionTemplate,
    Role,
    User,
    UserAssignment,
)


class StorageError(RuntimeError):
    """Raised by a connector when the backing store fails.

    Attributes
    ----------
    operation:
        Name of the connector operation that failed, if known.
    """

    def __init__(self, message: str, operation: str | None = None) -> None:
        self.operation = operation
        prefix = f"{operation}: " if operation else ""
        super().__init__(f"{prefix}{message}")


@runtime_checkable
class StorageConnector(Protocol):
    """Persistence backend for users, roles, groups, assignments and templates."""

    # Users
    async def get_user(self, user_id: str) -> User | None: ...

    async def create_user(self, user: User) -> User: ...

    async def update_user(self, user_id: str, updates: Mapping[str, object]) -> User: ...

    async def delete_user(self, user_id: str) -> None: ...

    # Roles
    async def get_role(self, role_id: str) -> Role | None: ...

    async def create_role(self, role: Role) -> Role: ...

    async def update_role(self, role_id: str, updates: Mapping[str, object]) -> Role: ...

    async def delete_role(self, role_id: str) -> None: ...

    # Groups
    async def get_group(self, group_id: str) -> Group | None: ...

    async def create_group(self, group: Group) -> Group: ...

    async def update_group(self, group_id: str, updates: Mapping[str, object]) -> Group: ...

    async def delete_group(self, group_id: str) -> None: ...

    async def get_groups_by_user_id(self, user_id: str) -> list[Group]: ...

    # Assignments
    async def get_user_assignment(self, subject_id: str) -> UserAssignment | None: ...

    async def create_user_assignment(self, assignment: UserAssignment) -> UserAssignment: ...

    async def update_user_assignment(
        self, subject_id: str, updates: Mapping[str, object]
    ) -> UserAssignment: ...

    async def delete_user_assignment(self, subject_id: str) -> None: ...

    # Templates
    async def get_template(self, template_id: str) -> PermissionTemplate | None: ...

    async def create_template(self, template: PermissionTemplate) -> PermissionTemplate: ...

    async def update_template(
        self, template_id: str, updates: Mapping[str, object]
    ) -> PermissionTemplate: ...

    async def delete_template(self, template_id: str) -> None: ...

    async def list_templates(self) -> list[PermissionTemplate]: ...
