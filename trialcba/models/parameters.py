from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np

"""Global economic parameters and sensitivity percentages.

Unlike cell coercion (services.numeric.to_number), parameter parsing is strict:
a value that is missing, non-numeric, non-finite or out of range is rejected
and the documented default is used instead, with a warning.
"""

__all__ = [
    "DEFAULT_PRICE_PER_TONNE",
    "DEFAULT_DISCOUNT_RATE",
    "DEFAULT_HORIZON_YEARS",
    "DEFAULT_AREA_HA",
    "EconomicParameters",
    "SensitivitySettings",
    "parse_percentage",
]

logger = logging.getLogger(__name__)

DEFAULT_PRICE_PER_TONNE = 600.0
DEFAULT_DISCOUNT_RATE = 0.07
DEFAULT_HORIZON_YEARS = 10
DEFAULT_AREA_HA = 100.0

DEFAULT_LOW_PRICE_PCT = 80.0
DEFAULT_HIGH_PRICE_PCT = 120.0
DEFAULT_LOW_COST_PCT = 80.0
DEFAULT_HIGH_COST_PCT = 120.0


def _strict_float(value: Any) -> float | None:
    """Parse a configuration scalar; None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, np.number)):
        x = float(value)
    elif isinstance(value, str):
        try:
            x = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return x if math.isfinite(x) else None


def _parse_with_default(name: str, value: Any, default: float, *, minimum: float, inclusive: bool) -> float:
    if value is None:
        return default
    x = _strict_float(value)
    ok = x is not None and (x >= minimum if inclusive else x > minimum)
    if not ok:
        logger.warning(f"invalid {name}={value!r} -> default {default}")
        return default
    return x  # type: ignore[return-value]


def parse_percentage(value: Any, default: float) -> float:
    """Parse a sensitivity percentage; non-finite or negative input falls back to default.

    Zero is accepted as-is.
    """
    return _parse_with_default("percentage", value, default, minimum=0.0, inclusive=True)


@dataclass(frozen=True)
class EconomicParameters:
    """Scenario-wide inputs to the discounting formulas."""
    price_per_tonne: float = DEFAULT_PRICE_PER_TONNE  # $/t
    discount_rate: float = DEFAULT_DISCOUNT_RATE  # decimal, 0.07 = 7%
    horizon_years: int = DEFAULT_HORIZON_YEARS
    area_ha: float = DEFAULT_AREA_HA  # whole-farm scaling only

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> EconomicParameters:
        data = data or {}
        price = _parse_with_default(
            "price_per_tonne", data.get("price_per_tonne"), DEFAULT_PRICE_PER_TONNE,
            minimum=0.0, inclusive=False,
        )
        rate = _parse_with_default(
            "discount_rate", data.get("discount_rate"), DEFAULT_DISCOUNT_RATE,
            minimum=0.0, inclusive=True,
        )
        area = _parse_with_default(
            "area_ha", data.get("area_ha"), DEFAULT_AREA_HA,
            minimum=0.0, inclusive=True,
        )
        horizon_raw = data.get("horizon_years")
        horizon = DEFAULT_HORIZON_YEARS
        if horizon_raw is not None:
            h = _strict_float(horizon_raw)
            if h is not None and h >= 1 and h == int(h):
                horizon = int(h)
            else:
                logger.warning(f"invalid horizon_years={horizon_raw!r} -> default {DEFAULT_HORIZON_YEARS}")
        return cls(price_per_tonne=price, discount_rate=rate, horizon_years=horizon, area_ha=area)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SensitivitySettings:
    """Price/cost percentages for the worst and best scenarios."""
    low_price_pct: float = DEFAULT_LOW_PRICE_PCT
    high_price_pct: float = DEFAULT_HIGH_PRICE_PCT
    low_cost_pct: float = DEFAULT_LOW_COST_PCT
    high_cost_pct: float = DEFAULT_HIGH_COST_PCT

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> SensitivitySettings:
        data = data or {}
        return cls(
            low_price_pct=parse_percentage(data.get("low_price_pct"), DEFAULT_LOW_PRICE_PCT),
            high_price_pct=parse_percentage(data.get("high_price_pct"), DEFAULT_HIGH_PRICE_PCT),
            low_cost_pct=parse_percentage(data.get("low_cost_pct"), DEFAULT_LOW_COST_PCT),
            high_cost_pct=parse_percentage(data.get("high_cost_pct"), DEFAULT_HIGH_COST_PCT),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
