"""
Reporting Engine - Minimum Wage Rate Resolver

UK National Minimum / Living Wage resolution by age and date.

Each band applies from its effective date (inclusive) until the next band
starts. Within a band the rate for the highest age threshold not exceeding
the worker's age applies:

- 2025-04-01: under 18 £7.55, 18-20 £10.00, 21+ £12.21
- 2024-04-01: under 18 £7.49, 18-20 £8.60, 21+ £11.44
- 2023-04-01: under 21 £7.49, 21-22 £10.18, 23+ £10.42
- 2022-04-01: under 21 £6.83, 21-22 £9.18, 23+ £9.50
- 2021-04-01: under 21 £6.56, 21-22 £8.36, 23+ £8.91
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Mapping, Optional, Union

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class MinimumWageBand:
    """Rates effective from a date, keyed by minimum age."""
    effective_from: date
    rates: Dict[int, float]
    
    def rate_for_age(self, age: int) -> Optional[float]:
        """Rate of the highest age threshold not exceeding ``age``."""
        eligible = [threshold for threshold in self.rates if threshold <= age]
        if not eligible:
            return None
        return self.rates[max(eligible)]


UK_MINIMUM_WAGE_BANDS = [
    MinimumWageBand(date(2025, 4, 1), {0: 7.55, 18: 10.00, 21: 12.21}),
    MinimumWageBand(date(2024, 4, 1), {0: 7.49, 18: 8.60, 21: 11.44}),
    MinimumWageBand(date(2023, 4, 1), {0: 7.49, 21: 10.18, 23: 10.42}),
    MinimumWageBand(date(2022, 4, 1), {0: 6.83, 21: 9.18, 23: 9.50}),
    MinimumWageBand(date(2021, 4, 1), {0: 6.56, 21: 8.36, 23: 8.91}),
]


@dataclass(frozen=True)
class DailyRate:
    date: date
    rate: Optional[float]


RateOrSeries = Union[Optional[float], List[DailyRate]]


@dataclass
class BasePayResult:
    """Base pay for a period plus the rates that produced it."""
    base_pay: Decimal
    rates: List[Decimal] = field(default_factory=list)
    average_rate: Optional[Decimal] = None
    
    @property
    def has_multiple_rates(self) -> bool:
        return len(self.rates) > 1


DateLike = Union[date, datetime, str]


def to_date(value: DateLike) -> date:
    """Coerce a date, datetime or ISO string to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return isoparse(value).date()


def age_on(dob: DateLike, on: DateLike) -> int:
    """Age in whole years on a given day."""
    return relativedelta(to_date(on), to_date(dob)).years


def each_day(start: DateLike, end: DateLike) -> List[date]:
    """Every calendar day in ``[start, end]`` inclusive."""
    start_date, end_date = to_date(start), to_date(end)
    return [start_date + timedelta(days=n) for n in range((end_date - start_date).days + 1)]


def round_half_up(value: Union[Decimal, float, int], places: Decimal = CENT) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(places, rounding=ROUND_HALF_UP)


class MinimumWageResolver:
    """
    Minimum wage lookups against a band table.
    
    Defaults to the UK bands; pass another table for tests or other regimes.
    """
    
    def __init__(self, bands: List[MinimumWageBand] = None):
        self.bands = sorted(
            bands or UK_MINIMUM_WAGE_BANDS,
            key=lambda band: band.effective_from,
            reverse=True,
        )
    
    def band_for_date(self, on: DateLike) -> Optional[MinimumWageBand]:
        """Most recent band whose effective date is on or before ``on``."""
        on_date = to_date(on)
        return next((b for b in self.bands if b.effective_from <= on_date), None)
    
    def get_rate_for_date(self, age: int, on: DateLike) -> Optional[float]:
        band = self.band_for_date(on)
        if band is None:
            return None
        return band.rate_for_age(age)
    
    def get_minimum_wage_for_period(self, age: int, start: DateLike, end: DateLike) -> RateOrSeries:
        """Rate for a fixed age across a period; collapsed when constant."""
        series = [DailyRate(day, self.get_rate_for_date(age, day)) for day in each_day(start, end)]
        return _collapse(series)
    
    def get_minimum_wage_for_period_by_dob(
        self,
        dob: DateLike,
        start: DateLike,
        end: DateLike,
    ) -> RateOrSeries:
        """
        Rate across a period for a worker born on ``dob``.
        
        The age is recomputed for each day so a birthday inside the range
        can move the worker into another threshold. Returns a single rate
        when every day resolves to the same rate, otherwise the full daily
        series. Callers must branch on the result type.
        """
        series = [
            DailyRate(day, self.get_rate_for_date(age_on(dob, day), day))
            for day in each_day(start, end)
        ]
        return _collapse(series)
    
    def calculate_base_pay(
        self,
        dob: DateLike,
        hours_by_date: Mapping[DateLike, Union[float, int, str, Decimal]],
    ) -> BasePayResult:
        """
        Base pay = sum(hours[day] * rate(day)), rounded half-up to the cent.
        
        Every day with an applicable rate lists that rate, even when no
        hours were worked; only positive hours add to the pay.
        """
        total = Decimal("0")
        used_rates = set()
        
        for day, hours in hours_by_date.items():
            rate = self.get_rate_for_date(age_on(dob, day), day)
            if rate is None:
                logger.warning(f"No minimum wage band applies on {to_date(day).isoformat()}")
                continue
            rate_dec = Decimal(str(rate))
            used_rates.add(rate_dec)
            hours_dec = Decimal(str(hours or 0))
            if hours_dec > 0:
                total += hours_dec * rate_dec
        
        rates = sorted(used_rates)
        average = None
        if rates:
            average = round_half_up(sum(rates) / len(rates))
        
        return BasePayResult(
            base_pay=round_half_up(total),
            rates=rates,
            average_rate=average,
        )


def _collapse(series: List[DailyRate]) -> RateOrSeries:
    unique = {entry.rate for entry in series}
    if len(unique) == 1:
        return unique.pop()
    return series


_default_resolver = MinimumWageResolver()


def get_rate_for_date(age: int, on: DateLike) -> Optional[float]:
    return _default_resolver.get_rate_for_date(age, on)


def get_minimum_wage_for_period(age: int, start: DateLike, end: DateLike) -> RateOrSeries:
    return _default_resolver.get_minimum_wage_for_period(age, start, end)


def get_minimum_wage_for_period_by_dob(dob: DateLike, start: DateLike, end: DateLike) -> RateOrSeries:
    return _default_resolver.get_minimum_wage_for_period_by_dob(dob, start, end)


def calculate_base_pay(dob: DateLike, hours_by_date: Mapping[DateLike, Union[float, int, str, Decimal]]) -> BasePayResult:
    return _default_resolver.calculate_base_pay(dob, hours_by_date)
