"""Trial cost-benefit analysis: aggregate plot data and rank treatments by NPV against a control."""

from .services.aggregator import HeaderNotFoundError, NoTreatmentsError, aggregate_table
from .services.metrics import InvariantViolation, compute_results, present_value
from .services.scenarios import compute_scenarios
from .services.session import SessionStore, build_session, recompute

__version__ = "0.1.0"

__all__ = [
    "HeaderNotFoundError",
    "InvariantViolation",
    "NoTreatmentsError",
    "SessionStore",
    "aggregate_table",
    "build_session",
    "compute_results",
    "compute_scenarios",
    "present_value",
    "recompute",
]
