"""
Access policy for shareable links.
"""

from .access_gate import (
    AccessDecision,
    AccessPolicyEngine,
    AccessResult,
    evaluate_access,
)

__all__ = ["AccessDecision", "AccessPolicyEngine", "AccessResult", "evaluate_access"]
