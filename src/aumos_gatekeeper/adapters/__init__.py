"""Boundary adapters for host frameworks."""
from __future__ import annotations

from aumos_gatekeeper.adapters.claims import build_session_claims

__all__ = ["build_session_claims"]
