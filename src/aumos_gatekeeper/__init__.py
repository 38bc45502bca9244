"""aumos-gatekeeper: hierarchical permission evaluation with roles, nested groups and conditions.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import asyncio
>>> import aumos_gatekeeper as gk
>>> gk.__version__
'0.1.0'
>>> gatekeeper = gk.Gatekeeper(gk.InMemoryStorage())
>>> asyncio.run(gatekeeper.grant_permission("alice", "docs.*"))
ConditionalGrant(pattern='docs.*', conditions=(), effect=<Effect.ALLOW: 'allow'>)
>>> asyncio.run(gatekeeper.has_permission("alice", "docs.read")).allowed
True
"""
from __future__ import annotations

__version__: str = "0.1.0"

from aumos_gatekeeper.gatekeeper import Gatekeeper

# ---------------------------------------------------------------------------
# Evaluation core
# ---------------------------------------------------------------------------
from aumos_gatekeeper.permissions.conditions import (
    Condition,
    ConditionEvaluator,
    ConditionOperator,
)
from aumos_gatekeeper.permissions.pattern import (
    ParsedPermission,
    PatternMatcher,
    is_valid_permission,
    normalize_permission,
    parse_permission,
)
from aumos_gatekeeper.permissions.resolver import (
    ConditionalGrant,
    Decision,
    Effect,
    PermissionResolver,
)
from aumos_gatekeeper.aggregation.walker import GrantAggregator

# ---------------------------------------------------------------------------
# Model and storage
# ---------------------------------------------------------------------------
from aumos_gatekeeper.models import (
    Group,
    GroupRef,
    PermissionTemplate,
    Role,
    User,
    UserAssignment,
    is_valid_id,
)
from aumos_gatekeeper.storage.base import StorageConnector, StorageError
from aumos_gatekeeper.storage.memory import InMemoryStorage

# ---------------------------------------------------------------------------
# Cache, config, loading, audit, adapters
# ---------------------------------------------------------------------------
from aumos_gatekeeper.cache import PermissionCache, TTLPermissionCache
from aumos_gatekeeper.config import ConfigLoader, GatekeeperConfig, GatekeeperConfigError
from aumos_gatekeeper.loader import AccessModelLoader
from aumos_gatekeeper.audit import DecisionLogger
from aumos_gatekeeper.adapters.claims import build_session_claims

__all__ = [
    "__version__",
    "Gatekeeper",
    # Evaluation core
    "Condition",
    "ConditionEvaluator",
    "ConditionOperator",
    "ConditionalGrant",
    "Decision",
    "Effect",
    "GrantAggregator",
    "ParsedPermission",
    "PatternMatcher",
    "PermissionResolver",
    "is_valid_permission",
    "normalize_permission",
    "parse_permission",
    # Model and storage
    "Group",
    "GroupRef",
    "InMemoryStorage",
    "PermissionTemplate",
    "Role",
    "StorageConnector",
    "StorageError",
    "User",
    "UserAssignment",
    "is_valid_id",
    # Cache, config, loading, audit, adapters
    "AccessModelLoader",
    "ConfigLoader",
    "DecisionLogger",
    "GatekeeperConfig",
    "GatekeeperConfigError",
    "PermissionCache",
    "TTLPermissionCache",
    "build_session_claims",
]
