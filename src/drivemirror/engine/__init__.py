"""Run orchestration for drivemirror."""

from __future__ import annotations

from .reconciler import MODE_FULL, MODE_INCREMENTAL, ReconciliationEngine
from .run_state import ActiveRun, RunGuard
from .telemetry import best_effort

__all__ = [
    "ReconciliationEngine",
    "RunGuard",
    "ActiveRun",
    "best_effort",
    "MODE_FULL",
    "MODE_INCREMENTAL",
]
