"""Access-model entities: users, roles, groups, assignments and templates.

Entities are plain dataclasses owned by the storage connector. The
evaluator only reads roles and groups; it mutates assignments exclusively
through the connector.

Groups reference their subgroups by id (:class:`GroupRef`) rather than
embedding copies, so the aggregation walker always dereferences through the
connector and its visited-set operates on stable ids. ``Group.from_dict``
still accepts an embedded group object as a member and keeps only its id.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

from aumos_gatekeeper.permissions.resolver import ConditionalGrant

_VALID_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
_MAX_ID_LENGTH = 255


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def is_valid_id(identifier: object) -> bool:
    """Return True for 1-255 character ids of ``[A-Za-z0-9_-]``."""
    if not isinstance(identifier, str) or not identifier:
        return False
    return len(identifier) <= _MAX_ID_LENGTH and bool(_VALID_ID_RE.match(identifier))


def _parse_timestamp(raw: object) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return utc_now()


def _parse_grants(raw: object) -> list[ConditionalGrant]:
    if not raw:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"Grants must be a list; got {raw!r}.")
    return [ConditionalGrant.coerce(item) for item in raw]


def _require_id(data: Mapping[str, object], key: str, entity: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{entity}.{key} must be a non-empty string; got {value!r}.")
    return value


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------


@dataclass
class User:
    """A subject known to the storage layer."""

    id: str
    email: str | None = None
    name: str | None = None
    metadata: dict[str, object] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> User:
        return cls(
            id=_require_id(data, "id", "User"),
            email=data.get("email"),  # type: ignore[arg-type]
            name=data.get("name"),  # type: ignore[arg-type]
            metadata=dict(data.get("metadata") or {}),  # type: ignore[call-overload]
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# Role
# ---------------------------------------------------------------------------


@dataclass
class Role:
    """A named, ordered collection of grants."""

    id: str
    name: str
    permissions: list[ConditionalGrant] = field(default_factory=list)
    description: str | None = None
    metadata: dict[str, object] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Role:
        role_id = _require_id(data, "id", "Role")
        return cls(
            id=role_id,
            name=str(data.get("name") or role_id),
            permissions=_parse_grants(data.get("permissions")),
            description=data.get("description"),  # type: ignore[arg-type]
            metadata=dict(data.get("metadata") or {}),  # type: ignore[call-overload]
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "permissions": [g.to_dict() for g in self.permissions],
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# Group
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GroupRef:
    """Membership of one group inside another, by id."""

    id: str


GroupMember = str | GroupRef


def _parse_member(raw: object) -> GroupMember:
    if isinstance(raw, (str, GroupRef)):
        return raw
    if isinstance(raw, Group):
        return GroupRef(raw.id)
    if isinstance(raw, Mapping):
        # {"group": "<id>"} reference, or a denormalised embedded group.
        group_id = raw.get("group", raw.get("id"))
        if isinstance(group_id, str) and group_id:
            return GroupRef(group_id)
    raise ValueError(f"Group member must be a subject id or a group; got {raw!r}.")


@dataclass
class Group:
    """A set of members (subjects and subgroups) sharing grants."""

    id: str
    name: str
    members: list[GroupMember] = field(default_factory=list)
    permissions: list[ConditionalGrant] = field(default_factory=list)
    description: str | None = None
    metadata: dict[str, object] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Group:
        group_id = _require_id(data, "id", "Group")
        return cls(
            id=group_id,
            name=str(data.get("name") or group_id),
            members=[_parse_member(m) for m in (data.get("members") or [])],  # type: ignore[union-attr]
            permissions=_parse_grants(data.get("permissions")),
            description=data.get("description"),  # type: ignore[arg-type]
            metadata=dict(data.get("metadata") or {}),  # type: ignore[call-overload]
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "members": [
                {"group": m.id} if isinstance(m, GroupRef) else m for m in self.members
            ],
            "permissions": [g.to_dict() for g in self.permissions],
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @property
    def subject_members(self) -> list[str]:
        """Direct subject-id members, in order."""
        return [m for m in self.members if isinstance(m, str)]

    @property
    def subgroup_ids(self) -> list[str]:
        """Ids of directly nested groups, in order."""
        return [m.id for m in self.members if isinstance(m, GroupRef)]


# ---------------------------------------------------------------------------
# UserAssignment
# ---------------------------------------------------------------------------


@dataclass
class UserAssignment:
    """Roles, groups and direct grants held by one subject."""

    subject_id: str
    role_ids: list[str] = field(default_factory=list)
    group_ids: list[str] = field(default_factory=list)
    direct_grants: list[ConditionalGrant] = field(default_factory=list)
    metadata: dict[str, object] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> UserAssignment:
        subject_id = data.get("subject_id", data.get("user_id"))
        if not isinstance(subject_id, str) or not subject_id:
            raise ValueError(
                f"UserAssignment.subject_id must be a non-empty string; got {subject_id!r}."
            )
        raw_grants = data.get("direct_grants", data.get("direct_permissions"))
        return cls(
            subject_id=subject_id,
            role_ids=[str(r) for r in (data.get("role_ids") or [])],  # type: ignore[union-attr]
            group_ids=[str(g) for g in (data.get("group_ids") or [])],  # type: ignore[union-attr]
            direct_grants=_parse_grants(raw_grants),
            metadata=dict(data.get("metadata") or {}),  # type: ignore[call-overload]
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "subject_id": self.subject_id,
            "role_ids": list(self.role_ids),
            "group_ids": list(self.group_ids),
            "direct_grants": [g.to_dict() for g in self.direct_grants],
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# PermissionTemplate
# ---------------------------------------------------------------------------


@dataclass
class PermissionTemplate:
    """A stored, reusable grant bundle. Kept and listed, never expanded here."""

    id: str
    name: str
    permissions: list[ConditionalGrant] = field(default_factory=list)
    description: str | None = None
    variables: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, object] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> PermissionTemplate:
        template_id = _require_id(data, "id", "PermissionTemplate")
        return cls(
            id=template_id,
            name=str(data.get("name") or template_id),
            permissions=_parse_grants(data.get("permissions")),
            description=data.get("description"),  # type: ignore[arg-type]
            variables={str(k): str(v) for k, v in dict(data.get("variables") or {}).items()},  # type: ignore[call-overload]
            metadata=dict(data.get("metadata") or {}),  # type: ignore[call-overload]
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "permissions": [g.to_dict() for g in self.permissions],
            "variables": dict(self.variables),
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
