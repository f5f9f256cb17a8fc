from __future__ import annotations

from datetime import date
from decimal import Decimal, ROUND_CEILING, getcontext
from typing import Optional

from dateutil.relativedelta import relativedelta

from goalplan.core.constants import (
    CENT,
    DEFAULT_INFLATION_RATE,
    DEFAULT_RATE_CONVENTION,
    MAX_PROJECTION_MONTHS,
    MONTHS_PER_YEAR,
    RateConvention,
)

getcontext().prec = 28


def _d(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def _ceil_int(x: Decimal) -> int:
    return int(x.to_integral_value(rounding=ROUND_CEILING))


def monthly_rate(annual_rate, convention: RateConvention | str = DEFAULT_RATE_CONVENTION) -> Decimal:
    r_annual = _d(annual_rate)
    if r_annual < 0:
        raise ValueError("annual return rate cannot be negative")
    if r_annual == 0:
        return Decimal(0)
    if RateConvention(convention) is RateConvention.LINEAR:
        mr = r_annual / Decimal(MONTHS_PER_YEAR)
    else:
        mr = (Decimal(1) + r_annual) ** (Decimal(1) / Decimal(MONTHS_PER_YEAR)) - Decimal(1)
    # 1 + mr rounds to 1 at working precision
    if Decimal(1) + mr == Decimal(1):
        return Decimal(0)
    return mr


def balance_after(present_value, monthly_contribution, mr: Decimal, months: int) -> Decimal:
    """
    Balance after `months` periods: PV*(1+r)^n + PMT*((1+r)^n - 1)/r.
    Contributions land at the end of each month.
    """
    pv = _d(present_value)
    pmt = _d(monthly_contribution)
    if months <= 0:
        return pv
    if mr == 0:
        return pv + pmt * Decimal(months)

    growth = (Decimal(1) + mr) ** months
    return pv * growth + pmt * ((growth - Decimal(1)) / mr)


def future_value(
    present_value,
    monthly_contribution,
    annual_rate,
    months: int,
    *,
    convention: RateConvention | str = DEFAULT_RATE_CONVENTION,
) -> Decimal:
    return balance_after(present_value, monthly_contribution, monthly_rate(annual_rate, convention), months)


def months_to_reach_target(
    target_amount,
    present_value,
    monthly_contribution,
    annual_rate,
    *,
    convention: RateConvention | str = DEFAULT_RATE_CONVENTION,
    max_months: int = MAX_PROJECTION_MONTHS,
) -> Optional[int]:
    """
    Smallest n in [0, max_months] whose balance reaches target_amount, else None.

    A log estimate gives n directly; it is then nudged against balance_after
    so rounding in ln() never makes n one month off.
    """
    target = _d(target_amount)
    pv = _d(present_value)
    pmt = max(_d(monthly_contribution), Decimal(0))

    if pv >= target:
        return 0

    mr = monthly_rate(annual_rate, convention)

    if mr == 0:
        if pmt <= 0:
            return None
        n = _ceil_int((target - pv) / pmt)
    elif pmt <= 0:
        # growth only
        if pv <= 0:
            return None
        n = _ceil_int((target / pv).ln() / (Decimal(1) + mr).ln())
    else:
        ratio = (target * mr + pmt) / (pv * mr + pmt)
        n = _ceil_int(ratio.ln() / (Decimal(1) + mr).ln())

    n = max(n, 0)
    if n > max_months + 1:
        return None

    while n > 0 and balance_after(pv, pmt, mr, n - 1) >= target:
        n -= 1
    while balance_after(pv, pmt, mr, n) < target:
        n += 1
        if n > max_months:
            return None

    return n if n <= max_months else None


def completion_date(months: int, start: Optional[date] = None) -> date:
    start = start or date.today()
    return start + relativedelta(months=months)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end (negative if end is earlier)."""
    delta = relativedelta(end, start)
    return delta.years * MONTHS_PER_YEAR + delta.months


def inflation_adjusted(amount, years: int, inflation_rate=DEFAULT_INFLATION_RATE) -> Decimal:
    """Future nominal amount expressed in today's money."""
    amt = _d(amount)
    inf = _d(inflation_rate)
    if years <= 0 or inf <= 0:
        return amt
    return amt / ((Decimal(1) + inf) ** years)


def required_monthly_contribution(
    target_amount,
    present_value,
    months: int,
    annual_rate,
    *,
    convention: RateConvention | str = DEFAULT_RATE_CONVENTION,
) -> Optional[Decimal]:
    """
    Level monthly payment that grows present_value to target_amount in `months`.
    Rounded up to the cent. Returns 0 when already complete, None when months <= 0.
    """
    target = _d(target_amount)
    pv = _d(present_value)

    if pv >= target:
        return Decimal(0)
    if months <= 0:
        return None

    mr = monthly_rate(annual_rate, convention)
    if mr == 0:
        payment = (target - pv) / Decimal(months)
    else:
        growth = (Decimal(1) + mr) ** months
        payment = (target - pv * growth) * mr / (growth - Decimal(1))

    # growth alone gets there
    if payment <= 0:
        return Decimal(0)
    return payment.quantize(CENT, rounding=ROUND_CEILING)
