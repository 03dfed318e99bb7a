from .harness import SoakHarness, aggregate_iterations
from .models import SoakIteration, SoakResult, SoakSummary, SoakTotals

__all__ = [
    "SoakHarness",
    "aggregate_iterations",
    "SoakIteration",
    "SoakResult",
    "SoakSummary",
    "SoakTotals",
]
