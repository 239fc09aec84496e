"""
Date Range Validator

Checks a (start, end) pair against the chart's allowed window before any
market data request is built.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from core.config.constants import CONSTANTS
from core.errors import DateParseError, DateRangeError
from core.market.models import DateRange

logger = logging.getLogger(__name__)


class RangeViolation(Enum):
    """Reasons are checked in declaration order; the first one wins."""
    START_AFTER_END = "start_after_end"
    START_TOO_EARLY = "start_too_early"
    END_TOO_LATE = "end_too_late"


@dataclass(frozen=True)
class DateRangeCheck:
    """Result of date range validation."""
    reason: Optional[RangeViolation] = None
    message: str = ""

    @property
    def is_valid(self) -> bool:
        return self.reason is None

    def __bool__(self) -> bool:
        return self.is_valid


def parse_date(value: Union[str, date, datetime]) -> date:
    """
    Parse an ISO calendar date (YYYY-MM-DD).

    Raises:
        DateParseError: if the value is not a parseable date. This is a
            precondition failure, distinct from a range violation.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise DateParseError(str(value)) from None


class DateRangeValidator:
    """
    Validates chart date ranges.

    Checks, in order:
    - start must not be after end
    - start must not precede the lower bound
    - end must not exceed the upper bound
    """

    def __init__(
        self,
        min_date: date = CONSTANTS.market.MIN_DATE,
        max_date: date = CONSTANTS.market.MAX_DATE,
    ):
        self.min_date = min_date
        self.max_date = max_date

    def validate(self, start: date, end: date) -> DateRangeCheck:
        """Pure check; never raises for parsed dates."""
        if start > end:
            return DateRangeCheck(
                RangeViolation.START_AFTER_END,
                "Start date must be before end date",
            )
        if start < self.min_date:
            return DateRangeCheck(
                RangeViolation.START_TOO_EARLY,
                f"Start date cannot be before {self.min_date.year}",
            )
        if end > self.max_date:
            return DateRangeCheck(
                RangeViolation.END_TOO_LATE,
                f"End date cannot be after {self.max_date.year}",
            )
        return DateRangeCheck()

    def require(self, start: date, end: date) -> DateRange:
        """Validate and build a DateRange, raising DateRangeError on violation."""
        check = self.validate(start, end)
        if not check:
            logger.debug(f"Rejected range {start}..{end}: {check.reason.value}")
            raise DateRangeError(check.reason, check.message)
        return DateRange(start=start, end=end)

    def require_strings(self, start: str, end: str) -> DateRange:
        """Parse then validate; parse errors surface before range errors."""
        return self.require(parse_date(start), parse_date(end))
