"""Aggregation of direct, role and group grants for a subject."""
from __future__ import annotations

from aumos_gatekeeper.aggregation.walker import GrantAggregator

__all__ = ["GrantAggregator"]
