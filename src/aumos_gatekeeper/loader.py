"""YAML access-model loader.

AccessModelLoader reads users, roles, groups, assignments and templates
from YAML (or an already-parsed dict) and writes them into a storage
connector through its create operations. Grant patterns are normalized on
the way in.

Schema
------
::

    version: "1.0"
    roles:
      - id: "engineer"
        name: "Engineer"
        permissions:
          - permission: "code.*"
          - permission: "deploy.production"
            effect: "deny"
    groups:
      - id: "engineering"
        name: "Engineering"
        permissions:
          - permission: "engineering.*"
      - id: "backend-team"
        name: "Backend team"
        members:
          - "alice"
          - group: "engineering"
    assignments:
      - subject_id: "alice"
        role_ids: ["engineer"]
        group_ids: ["backend-team"]
        direct_grants:
          - permission: "docs.read"
            conditions:
              - attribute: "attributes.department"
                operator: "equals"
                value: "engineering"

Example
-------
::

    storage = InMemoryStorage()
    counts = await AccessModelLoader().load(storage, "access.yaml")
    assert counts["roles"] == 1
"""
from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping
from pathlib import Path

import yaml

from aumos_gatekeeper.config import GatekeeperConfigError
from aumos_gatekeeper.models import (
    Group,
    PermissionTemplate,
    Role,
    User,
    UserAssignment,
)
from aumos_gatekeeper.permissions.pattern import DEFAULT_SEPARATOR, normalize_permission
from aumos_gatekeeper.permissions.resolver import ConditionalGrant
from aumos_gatekeeper.storage.base import StorageConnector

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1.0", "1"])

_SECTIONS: tuple[str, ...] = ("users", "roles", "groups", "assignments", "templates")


def _record_id(record: object) -> str:
    if isinstance(record, UserAssignment):
        return record.subject_id
    return record.id  # type: ignore[attr-defined, no-any-return]


class AccessModelLoader:
    """Seeds a storage connector from a YAML access model.

    Parameters
    ----------
    separator:
        Permission separator used when normalizing grant patterns.
    strict:
        When ``True``, unknown top-level keys are an error. Default ``False``.
    """

    _KNOWN_TOP_KEYS: frozenset[str] = frozenset(
        ["version", "metadata", "description", *_SECTIONS]
    )

    def __init__(self, separator: str = DEFAULT_SEPARATOR, strict: bool = False) -> None:
        self._separator = separator
        self._strict = strict

    async def load(self, storage: StorageConnector, model_path: str | Path) -> dict[str, int]:
        """Load a YAML model file into *storage*.

        Returns
        -------
        dict[str, int]
            Number of records created per section.

        Raises
        ------
        FileNotFoundError
            If the model file does not exist.
        GatekeeperConfigError
            If the file cannot be parsed or is structurally invalid.
        """
        model_path = Path(model_path)
        if not model_path.exists():
            raise FileNotFoundError(f"Access model not found: {model_path}")

        with model_path.open("r", encoding="utf-8") as fh:
            raw = self._parse(fh.read(), str(model_path))
        return await self.load_from_dict(storage, raw, model_path=str(model_path))

    async def load_from_yaml_string(
        self,
        storage: StorageConnector,
        yaml_string: str,
        model_path: str | None = None,
    ) -> dict[str, int]:
        """Load a model from a YAML string into *storage*."""
        raw = self._parse(yaml_string, model_path)
        return await self.load_from_dict(storage, raw, model_path=model_path)

    async def load_from_dict(
        self,
        storage: StorageConnector,
        model: Mapping[str, object],
        model_path: str | None = None,
    ) -> dict[str, int]:
        """Validate *model* and create its records in *storage*.

        Every record is parsed before anything is written, so a malformed
        model leaves the connector untouched.
        """
        self._validate_structure(model, model_path)

        builders: dict[str, Callable[[Mapping[str, object]], object]] = {
            "users": User.from_dict,
            "roles": lambda d: self._normalize_grants(Role.from_dict(d)),
            "groups": lambda d: self._normalize_grants(Group.from_dict(d)),
            "assignments": lambda d: self._normalize_assignment(UserAssignment.from_dict(d)),
            "templates": lambda d: self._normalize_grants(PermissionTemplate.from_dict(d)),
        }

        parsed: dict[str, list[object]] = {}
        for section in _SECTIONS:
            parsed[section] = []
            seen_ids: set[str] = set()
            for index, raw_record in enumerate(model.get(section) or []):  # type: ignore[union-attr]
                if not isinstance(raw_record, Mapping):
                    raise GatekeeperConfigError(
                        f"Entry {index} in '{section}' must be a mapping.", model_path
                    )
                try:
                    parsed[section].append(builders[section](raw_record))
                except (ValueError, KeyError, TypeError) as exc:
                    raise GatekeeperConfigError(
                        f"Error in '{section}' at index {index}: {exc}", model_path
                    ) from exc
                record_id = _record_id(parsed[section][-1])
                if record_id in seen_ids:
                    raise GatekeeperConfigError(
                        f"Duplicate id {record_id!r} in '{section}' at index {index}.",
                        model_path,
                    )
                seen_ids.add(record_id)

        for user in parsed["users"]:
            await storage.create_user(user)  # type: ignore[arg-type]
        for role in parsed["roles"]:
            await storage.create_role(role)  # type: ignore[arg-type]
        for group in parsed["groups"]:
            await storage.create_group(group)  # type: ignore[arg-type]
        for assignment in parsed["assignments"]:
            await storage.create_user_assignment(assignment)  # type: ignore[arg-type]
        for template in parsed["templates"]:
            await storage.create_template(template)  # type: ignore[arg-type]

        counts = {section: len(records) for section, records in parsed.items()}
        logger.info("Loaded access model from %s: %s", model_path or "<dict>", counts)
        return counts

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _parse(self, yaml_string: str, model_path: str | None) -> dict[str, object]:
        try:
            raw = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise GatekeeperConfigError(f"Failed to parse YAML: {exc}", model_path) from exc
        return raw  # type: ignore[no-any-return]

    def _normalize_grant(self, grant: ConditionalGrant) -> ConditionalGrant:
        return dataclasses.replace(
            grant, pattern=normalize_permission(grant.pattern, self._separator)
        )

    def _normalize_grants(self, record: Role | Group | PermissionTemplate) -> object:
        record.permissions = [self._normalize_grant(g) for g in record.permissions]
        return record

    def _normalize_assignment(self, assignment: UserAssignment) -> UserAssignment:
        assignment.direct_grants = [self._normalize_grant(g) for g in assignment.direct_grants]
        return assignment

    def _validate_structure(self, raw: object, model_path: str | None) -> None:
        if not isinstance(raw, Mapping):
            raise GatekeeperConfigError("Access model must be a YAML mapping (dict).", model_path)

        version = str(raw.get("version", "1.0"))
        if version not in _SUPPORTED_VERSIONS:
            raise GatekeeperConfigError(
                f"Unsupported model version {version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                model_path,
            )

        for section in _SECTIONS:
            value = raw.get(section)
            if value is not None and not isinstance(value, list):
                raise GatekeeperConfigError(f"'{section}' must be a list.", model_path)

        if self._strict:
            unknown_keys = set(raw.keys()) - self._KNOWN_TOP_KEYS
            if unknown_keys:
                raise GatekeeperConfigError(
                    f"Unknown top-level keys: {sorted(unknown_keys)}. "
                    f"Known keys: {sorted(self._KNOWN_TOP_KEYS)}.",
                    model_path,
                )
