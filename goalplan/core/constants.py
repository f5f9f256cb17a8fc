from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class RateConvention(str, Enum):
    """How an annual return rate becomes a monthly one."""

    GEOMETRIC = "geometric"  # (1 + a) ** (1/12) - 1
    LINEAR = "linear"        # a / 12


# -------------------------
# Return rates (annual)
# -------------------------

HYSA_RATE = Decimal("0.045")
STOCK_MARKET_REAL_RETURN = Decimal("0.07")
STOCK_MARKET_NOMINAL_RETURN = Decimal("0.10")
CONSERVATIVE_RATE = Decimal("0.04")
BLENDED_RATE = Decimal("0.05")
DONOR_FUND_RATE = Decimal("0.035")

DEFAULT_INFLATION_RATE = Decimal("0.03")

# -------------------------
# Limits
# -------------------------

# 50 years; matches the "50+ years" label for unreachable goals
MAX_PROJECTION_MONTHS = 600
MONTHS_PER_YEAR = 12
CENT = Decimal("0.01")

DEFAULT_RATE_CONVENTION = RateConvention.GEOMETRIC

# Keyed by GoalType value so this module does not import the schemas.
DEFAULT_RETURN_RATES: Mapping[str, Decimal] = MappingProxyType({
    "house": HYSA_RATE,
    "retirement": STOCK_MARKET_REAL_RETURN,
    "vacation": CONSERVATIVE_RATE,
    "emergency_fund": HYSA_RATE,
    "baby_family": BLENDED_RATE,
    "debt": Decimal("0"),
    "car": CONSERVATIVE_RATE,
    "education": BLENDED_RATE,
    "hobby": CONSERVATIVE_RATE,
    "fitness": CONSERVATIVE_RATE,
    "gift": DONOR_FUND_RATE,
    "home_improvement": CONSERVATIVE_RATE,
    "investment": STOCK_MARKET_REAL_RETURN,
    "charity": DONOR_FUND_RATE,
    "custom": BLENDED_RATE,
})


@dataclass(frozen=True)
class EngineAssumptions:
    """
    Immutable configuration for a FinancialEngine.
    - rate_convention: annual -> monthly rate conversion
    - max_projection_months: search bound, past it a goal is unreachable
    - inflation_rate: used by inflation_adjusted helpers
    - return_rates: per goal-type defaults (type value -> annual rate)
    """

    rate_convention: RateConvention = DEFAULT_RATE_CONVENTION
    max_projection_months: int = MAX_PROJECTION_MONTHS
    inflation_rate: Decimal = DEFAULT_INFLATION_RATE
    return_rates: Mapping[str, Decimal] = field(default_factory=lambda: DEFAULT_RETURN_RATES)

    def __post_init__(self) -> None:
        if self.max_projection_months <= 0:
            raise ValueError("max_projection_months must be positive")
        if self.inflation_rate < 0:
            raise ValueError("inflation_rate cannot be negative")
        object.__setattr__(self, "rate_convention", RateConvention(self.rate_convention))

    def default_rate(self, goal_type: str) -> Decimal:
        return self.return_rates.get(goal_type, DEFAULT_RETURN_RATES["custom"])

    @classmethod
    def from_settings(cls, settings: Optional[object] = None) -> "EngineAssumptions":
        if settings is None:
            from goalplan.core.config import SETTINGS
            settings = SETTINGS
        return cls(
            rate_convention=RateConvention(getattr(settings, "rate_convention")),
            max_projection_months=int(getattr(settings, "max_projection_months")),
            inflation_rate=Decimal(str(getattr(settings, "inflation_rate"))),
        )


DEFAULT_ASSUMPTIONS = EngineAssumptions()
