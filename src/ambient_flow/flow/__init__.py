from .models import FlowEvidence, FlowResult, FlowStage
from .orchestrator import FlowOrchestrator
from .polling import PollResult, poll_until_ready

__all__ = [
    "FlowEvidence",
    "FlowResult",
    "FlowStage",
    "FlowOrchestrator",
    "PollResult",
    "poll_until_ready",
]
