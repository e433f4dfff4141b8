from .escalation import ConsoleResolver, Decision, ErrorEscalationCoordinator, skip_policy, stop_policy
from .orchestrator import (
    BatchResult,
    CaptioningOrchestrator,
    ItemOutcome,
    ItemStatus,
    plan_batch,
)

__all__ = [
    "BatchResult",
    "CaptioningOrchestrator",
    "ConsoleResolver",
    "Decision",
    "ErrorEscalationCoordinator",
    "ItemOutcome",
    "ItemStatus",
    "plan_batch",
    "skip_policy",
    "stop_policy",
]
