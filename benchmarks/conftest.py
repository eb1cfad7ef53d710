"""Shared bootstrap for automator-gatekeeper benchmarks."""
from __future__ import annotations

import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).parent.parent
_SRC = _REPO_ROOT / "src"
_BENCHMARKS = _REPO_ROOT / "benchmarks"

for _path in [str(_SRC), str(_BENCHMARKS)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

from automator_gatekeeper.gatekeeper import Gatekeeper
from automator_gatekeeper.limits.rate_limiter import RateLimiter
from automator_gatekeeper.policies.evaluator import ActionKind, PolicyEvaluator

__all__ = [
    "ActionKind",
    "Gatekeeper",
    "PolicyEvaluator",
    "RateLimiter",
]
