from __future__ import annotations

from dataclasses import dataclass, field, replace

"""Treatment domain model.

A Treatment is one amendment/intervention whose plot rows have been averaged.
Instances are frozen; user edits produce new instances via ``with_edits``.
"""

__all__ = [
    "Treatment",
]


@dataclass(frozen=True)
class Treatment:
    """Averaged plot measurements for one amendment label.

    Attributes:
        name: Trimmed amendment text, also used as the treatment id
        avg_yield_per_ha: Mean yield (t/ha), rounded to 3 decimals
        annual_cost_per_ha: Mean treatment input cost ($/ha/yr), rounded to 2 decimals
        capital_cost_year0: Up-front cost in year 0 ($/ha), user editable
        is_control: True for the single baseline treatment
        extra_aggregates: Extra field key -> mean value
        plot_count: Number of data rows grouped into this treatment
    """
    name: str
    avg_yield_per_ha: float
    annual_cost_per_ha: float
    capital_cost_year0: float = 0.0
    is_control: bool = False
    extra_aggregates: dict[str, float] = field(default_factory=dict)
    plot_count: int = 0

    @property
    def id(self) -> str:
        return self.name

    def with_control(self, is_control: bool) -> Treatment:
        if self.is_control == is_control:
            return self
        return replace(self, is_control=is_control)

    def with_edits(
        self,
        *,
        avg_yield_per_ha: float | None = None,
        annual_cost_per_ha: float | None = None,
        capital_cost_year0: float | None = None,
    ) -> Treatment:
        """Return a copy with any provided numeric fields replaced."""
        changes: dict[str, float] = {}
        if avg_yield_per_ha is not None:
            changes["avg_yield_per_ha"] = float(avg_yield_per_ha)
        if annual_cost_per_ha is not None:
            changes["annual_cost_per_ha"] = float(annual_cost_per_ha)
        if capital_cost_year0 is not None:
            changes["capital_cost_year0"] = float(capital_cost_year0)
        if not changes:
            return self
        return replace(self, **changes)
