"""Permission rules for action requests."""
from __future__ import annotations

from automator_gatekeeper.policies.evaluator import (
    DANGEROUS_PATTERNS,
    ActionKind,
    Decision,
    PolicyEvaluator,
)

__all__ = ["DANGEROUS_PATTERNS", "ActionKind", "Decision", "PolicyEvaluator"]
