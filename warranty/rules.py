"""
Warranty rules - pure functions, no database access.

A warranty code such as "24F+24P" reads as 24 months free replacement
(guarantee) followed by 24 months pro-rata (paid warranty). Eligibility is
re-derived from the purchase date on every call and never stored.
"""
import calendar
import datetime
import re
from dataclasses import dataclass
from typing import NamedTuple, Optional

from django.db import models
from django.utils import timezone

WARRANTY_CODE = re.compile(r'(\d+)F(?:\+(\d+)P)?')


class WarrantyWindow(NamedTuple):
    guarantee_months: int
    warranty_months: int
    total_months: int


NO_COVERAGE = WarrantyWindow(0, 0, 0)


class ReplacementType(models.TextChoices):
    GUARANTEE = 'guarantee', 'Guarantee'
    WARRANTY = 'warranty', 'Warranty'


def parse_warranty(code) -> WarrantyWindow:
    """
    Decode a warranty code. Never raises.

    >>> parse_warranty('24F+24P')
    WarrantyWindow(guarantee_months=24, warranty_months=24, total_months=48)
    >>> parse_warranty('48M (30F)')
    WarrantyWindow(guarantee_months=30, warranty_months=0, total_months=30)
    >>> parse_warranty('garbage')
    WarrantyWindow(guarantee_months=0, warranty_months=0, total_months=0)
    """
    if not code or not isinstance(code, str):
        return NO_COVERAGE

    match = WARRANTY_CODE.search(code)
    if match is None:
        return NO_COVERAGE

    guarantee = int(match.group(1))
    warranty = int(match.group(2)) if match.group(2) else 0
    return WarrantyWindow(guarantee, warranty, guarantee + warranty)


def resolve_window(line_code, product_code, legacy_guarantee_months=0) -> WarrantyWindow:
    """
    Warranty window for a sold unit.

    The code snapshotted on the sale line wins over the product's current
    code; when neither yields guarantee months the product's legacy
    guarantee_period_months is used.
    """
    window = parse_warranty(line_code or product_code or '')
    guarantee = window.guarantee_months or (legacy_guarantee_months or 0)
    warranty = window.warranty_months
    total = window.total_months if window.total_months > 0 else guarantee + warranty
    return WarrantyWindow(guarantee, warranty, total)


def months_elapsed(purchase_date: datetime.date, today: datetime.date) -> int:
    # Whole calendar months; the day of month is ignored.
    return (today.year - purchase_date.year) * 12 + (today.month - purchase_date.month)


def add_months(day: datetime.date, months: int) -> datetime.date:
    """Calendar month arithmetic, clamped to the last day of the month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return datetime.date(year, month, min(day.day, last_day))


@dataclass(frozen=True)
class Eligibility:
    months_elapsed: int
    under_guarantee: bool
    months_past_guarantee: int
    within_warranty_period: bool

    @property
    def eligible_for_replacement(self) -> bool:
        return self.under_guarantee or self.within_warranty_period

    @property
    def replacement_type(self) -> Optional[str]:
        if self.under_guarantee:
            return ReplacementType.GUARANTEE
        if self.within_warranty_period:
            return ReplacementType.WARRANTY
        return None

    @property
    def out_of_warranty(self) -> bool:
        return not self.eligible_for_replacement

    def as_dict(self) -> dict:
        return {
            'months_elapsed': self.months_elapsed,
            'under_guarantee': self.under_guarantee,
            'within_warranty_period': self.within_warranty_period,
            'months_after_guarantee': self.months_past_guarantee,
            'eligible_for_replacement': self.eligible_for_replacement,
            'replacement_type': self.replacement_type,
            'out_of_warranty': self.out_of_warranty,
        }


def evaluate_eligibility(purchase_date: datetime.date, window: WarrantyWindow,
                         today: Optional[datetime.date] = None) -> Eligibility:
    """
    Replacement eligibility of a unit bought on ``purchase_date``.

    The last guarantee month is still covered (``<=``). A window without
    guarantee months is never under guarantee.
    """
    today = today or timezone.localdate()
    elapsed = months_elapsed(purchase_date, today)
    guarantee = window.guarantee_months

    under_guarantee = guarantee > 0 and elapsed <= guarantee
    past_guarantee = max(0, elapsed - guarantee)
    within_warranty = (
        window.total_months > 0
        and 0 <= past_guarantee <= window.warranty_months
    )
    return Eligibility(
        months_elapsed=elapsed,
        under_guarantee=under_guarantee,
        months_past_guarantee=past_guarantee,
        within_warranty_period=within_warranty,
    )
