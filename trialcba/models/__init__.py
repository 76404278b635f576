"""Domain models for the trial cost-benefit analysis tool.

This package contains the frozen dataclasses shared by the aggregation,
metrics, scenario and export services.
"""

from .column_map import ColumnMap, ExtraFieldDef, FieldClass
from .parameters import EconomicParameters, SensitivitySettings
from .result import CashflowYear, Result, ScenarioRow
from .session import SessionSnapshot, TreatmentEdit
from .treatment import Treatment

__all__ = [
    # Upload structure
    "ColumnMap",
    "ExtraFieldDef",
    "FieldClass",
    "Treatment",
    # Inputs
    "EconomicParameters",
    "SensitivitySettings",
    "TreatmentEdit",
    # Derived
    "CashflowYear",
    "Result",
    "ScenarioRow",
    "SessionSnapshot",
]
