from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Any

from ..models.parameters import EconomicParameters, SensitivitySettings
from ..models.session import SessionSnapshot, TreatmentEdit
from ..models.treatment import Treatment
from .aggregator import aggregate_table
from .metrics import compute_results
from .scenarios import compute_scenarios

"""Session state: immutable snapshots replaced wholesale.

build_session turns a raw table into a fully computed snapshot.
recompute applies edits / new parameters and returns a new snapshot; the
input snapshot is never modified. SessionStore holds the single current
snapshot for callers that need a mutable slot.
"""

__all__ = [
    "UnknownTreatmentError",
    "apply_edits",
    "select_control",
    "build_session",
    "recompute",
    "SessionStore",
]

logger = logging.getLogger(__name__)


class UnknownTreatmentError(ValueError):
    """Raised when an edit or control selection names a treatment that does not exist."""


def apply_edits(treatments: Sequence[Treatment], edits: Iterable[TreatmentEdit]) -> list[Treatment]:
    by_name = {t.name: i for i, t in enumerate(treatments)}
    updated = list(treatments)
    for edit in edits:
        if edit.name not in by_name:
            raise UnknownTreatmentError(f"edit for unknown treatment '{edit.name}'")
        i = by_name[edit.name]
        updated[i] = updated[i].with_edits(
            avg_yield_per_ha=edit.avg_yield_per_ha,
            annual_cost_per_ha=edit.annual_cost_per_ha,
            capital_cost_year0=edit.capital_cost_year0,
        )
    return updated


def select_control(treatments: Sequence[Treatment], name: str) -> list[Treatment]:
    """Move the control flag to ``name`` (exact match first, then case-insensitive)."""
    names = [t.name for t in treatments]
    if name in names:
        chosen = names.index(name)
    else:
        folded = [n.casefold() for n in names]
        if name.casefold() not in folded:
            raise UnknownTreatmentError(f"control treatment '{name}' not found")
        chosen = folded.index(name.casefold())
    return [t.with_control(i == chosen) for i, t in enumerate(treatments)]


def _derive(
    base: SessionSnapshot,
    treatments: Sequence[Treatment],
    parameters: EconomicParameters,
    sensitivity: SensitivitySettings,
) -> SessionSnapshot:
    results = tuple(compute_results(treatments, parameters))
    scenarios = tuple(compute_scenarios(treatments, parameters, sensitivity))
    return replace(
        base,
        parameters=parameters,
        sensitivity=sensitivity,
        treatments=tuple(treatments),
        results=results,
        scenarios=scenarios,
    )


def build_session(
    rows: Sequence[Sequence[Any]],
    parameters: EconomicParameters | None = None,
    sensitivity: SensitivitySettings | None = None,
    *,
    source_name: str = "",
    sheet_name: str = "",
    edits: Iterable[TreatmentEdit] = (),
    control: str | None = None,
) -> SessionSnapshot:
    """Aggregate a raw table and compute results + scenarios.

    Raises:
        HeaderNotFoundError / NoTreatmentsError: the table is not a usable trial sheet
        UnknownTreatmentError: an edit or the control names a missing treatment
    """
    column_map, treatments = aggregate_table(rows)
    if control:
        treatments = select_control(treatments, control)
    treatments = apply_edits(treatments, edits)
    logger.info(f"{source_name or '<table>'}: {len(treatments)} treatments, {len(column_map.extra_fields)} extra fields")
    base = SessionSnapshot(
        source_name=source_name,
        sheet_name=sheet_name,
        column_map=column_map,
        parameters=parameters or EconomicParameters(),
        sensitivity=sensitivity or SensitivitySettings(),
        treatments=tuple(treatments),
    )
    return _derive(base, treatments, base.parameters, base.sensitivity)


def recompute(
    snapshot: SessionSnapshot,
    edits: Iterable[TreatmentEdit] = (),
    *,
    parameters: EconomicParameters | None = None,
    sensitivity: SensitivitySettings | None = None,
    control: str | None = None,
) -> SessionSnapshot:
    """Return a new snapshot with edits and parameter changes applied."""
    treatments: list[Treatment] = list(snapshot.treatments)
    if control:
        treatments = select_control(treatments, control)
    treatments = apply_edits(treatments, edits)
    return _derive(
        snapshot,
        treatments,
        parameters or snapshot.parameters,
        sensitivity or snapshot.sensitivity,
    )


class SessionStore:
    """Single-slot holder for the current snapshot.

    Reads return the immutable snapshot object; writers swap the slot under a
    lock, so a reader never sees treatments and results from different runs.
    A failed load or recompute leaves the previous snapshot in place.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: SessionSnapshot | None = None

    def snapshot(self) -> SessionSnapshot | None:
        with self._lock:
            return self._snapshot

    def load(self, rows: Sequence[Sequence[Any]], **kwargs: Any) -> SessionSnapshot:
        new = build_session(rows, **kwargs)  # raises before the slot is touched
        with self._lock:
            self._snapshot = new
        return new

    def apply(self, edits: Iterable[TreatmentEdit] = (), **kwargs: Any) -> SessionSnapshot:
        with self._lock:
            current = self._snapshot
            if current is None:
                raise RuntimeError("no session loaded")
            new = recompute(current, edits, **kwargs)
            self._snapshot = new
        return new

    def clear(self) -> None:
        with self._lock:
            self._snapshot = None
