"""Job completion reconciliation for genbatch.

Components:
- ReconciliationEngine: idempotent merge of one job outcome into a batch record
- StuckJobScanner: periodic pull of job status for stale batches
- RecordLocks: per-record mutual exclusion around read-merge-write
"""

from genbatch.core.reconciliation.engine import (
    FailurePolicy,
    MergeDecision,
    ReconciliationEngine,
    plan_merge,
)
from genbatch.core.reconciliation.locks import RecordLocks
from genbatch.core.reconciliation.scanner import ScanReport, StuckJobScanner

__all__ = [
    "FailurePolicy",
    "MergeDecision",
    "ReconciliationEngine",
    "RecordLocks",
    "ScanReport",
    "StuckJobScanner",
    "plan_merge",
]
