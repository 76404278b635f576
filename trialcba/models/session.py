from __future__ import annotations

from dataclasses import dataclass, field

from .column_map import ColumnMap
from .parameters import EconomicParameters, SensitivitySettings
from .result import Result, ScenarioRow
from .treatment import Treatment

"""Session snapshot model.

The snapshot holds everything derived from one upload. It is replaced as a
whole by services.session.recompute; Treatments, Results and ScenarioRows in a
snapshot are always computed from the same inputs.
"""

__all__ = [
    "TreatmentEdit",
    "SessionSnapshot",
]


@dataclass(frozen=True)
class TreatmentEdit:
    """User override of a treatment's editable numeric fields (None = keep)."""
    name: str
    avg_yield_per_ha: float | None = None
    annual_cost_per_ha: float | None = None
    capital_cost_year0: float | None = None


@dataclass(frozen=True)
class SessionSnapshot:
    source_name: str  # uploaded file name
    sheet_name: str
    column_map: ColumnMap
    parameters: EconomicParameters
    sensitivity: SensitivitySettings
    treatments: tuple[Treatment, ...]
    results: tuple[Result, ...] = field(default_factory=tuple)  # rank order
    scenarios: tuple[ScenarioRow, ...] = field(default_factory=tuple)  # treatment order

    @property
    def control(self) -> Treatment | None:
        for t in self.treatments:
            if t.is_control:
                return t
        return None

    def result_for(self, name: str) -> Result | None:
        for r in self.results:
            if r.name == name:
                return r
        return None
