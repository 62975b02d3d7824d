"""Date Window Resolution

Turns the date inputs of an explorer request into a bounded, validated DateWindow.

Resolution Policy (first matching rule wins):
    1. Start and end given: start must not be after end. A span longer than
       max_span_days is clamped by truncating the end to start + max_span_days.
    2. Only start given: end = start + default_forward_span_days.
    3. Only end given: start = end - default_forward_span_days.
    4. Only a reference date given: reference date +/- half_span_days.
       Nothing given: today -> today + default_forward_span_days.

All arithmetic uses whole calendar days on datetime.date objects, so results never
depend on time of day, timezone offsets or daylight-saving transitions.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional

from explorer_config import DEFAULTS, ExplorerConfig
from series_models import DateWindow, InvalidDateError

DATE_FORMAT = "%Y-%m-%d"

DateInput = date | str | None


def parse_date(value: Any, name: str = "date") -> date:
    """Parse a date input into a datetime.date object.

    Args:
        value (Any): Date in "YYYY-MM-DD" format or a date object. Datetime objects
            are reduced to their calendar date.
        name (str): Name of the input, used in error messages.

    Raises:
        InvalidDateError: When value is not a valid calendar date.

    Returns:
        date: Parsed calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), DATE_FORMAT).date()
        except ValueError as exc:
            raise InvalidDateError(
                f"Parameter {name} must be a date in YYYY-MM-DD format. Got {value!r} instead."
            ) from exc
    raise InvalidDateError(
        f"Parameter {name} expected {date} or {str} Received {type(value)} instead."
    )


class DateWindowResolver:
    """Resolves reference dates and explicit bounds into DateWindow objects.

    Attributes:
        max_span_days (int): Longest allowed end - start distance in days.
        default_forward_span_days (int): Span used for single-bound and default windows.
        half_span_days (int): Days on each side of a reference date.

    Example:
        resolver = DateWindowResolver(ExplorerConfig(create_from_file=True))
        window = resolver.resolve(reference_date="2024-06-15")
        # DateWindow(start=date(2024, 6, 12), end=date(2024, 6, 18))
    """

    def __init__(
        self,
        config: Optional[ExplorerConfig] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        if config is not None:
            self.max_span_days = config.max_span_days
            self.default_forward_span_days = config.default_forward_span_days
            self.half_span_days = config.half_span_days
        else:
            self.max_span_days = DEFAULTS["max_span_days"]
            self.default_forward_span_days = DEFAULTS["default_forward_span_days"]
            self.half_span_days = DEFAULTS["half_span_days"]

        self.__today = today
        self.logger = logging.getLogger(name=self.__class__.__name__)

    def resolve(
        self,
        reference_date: DateInput = None,
        start: DateInput = None,
        end: DateInput = None,
    ) -> DateWindow:
        """Resolve the effective window of a request.

        Every supplied input is validated, even the ones a higher priority rule
        makes irrelevant.

        Args:
            reference_date (date | str | None): Date the window is centered on.
            start (date | str | None): Explicit first day of the window.
            end (date | str | None): Explicit last day of the window.

        Raises:
            InvalidDateError: When any supplied date is malformed or start is after end.

        Returns:
            DateWindow: Resolved inclusive window.
        """
        reference = self.__parse_optional(reference_date, "reference_date")
        start_date = self.__parse_optional(start, "start_date")
        end_date = self.__parse_optional(end, "end_date")

        if start_date is not None and end_date is not None:
            if start_date > end_date:
                raise InvalidDateError(
                    f"Window start must not be after its end. Got {start_date} - {end_date}"
                )
            if (end_date - start_date).days > self.max_span_days:
                clamped_end = self.__shift(start_date, self.max_span_days)
                self.logger.info(
                    f"Window {start_date} - {end_date} exceeds {self.max_span_days} days. Clamping end to {clamped_end}."
                )
                end_date = clamped_end
            return DateWindow(start=start_date, end=end_date)

        if start_date is not None:
            return DateWindow(start=start_date, end=self.__shift(start_date, self.default_forward_span_days))

        if end_date is not None:
            return DateWindow(start=self.__shift(end_date, -self.default_forward_span_days), end=end_date)

        if reference is not None:
            return DateWindow(
                start=self.__shift(reference, -self.half_span_days),
                end=self.__shift(reference, self.half_span_days),
            )

        today = self.__today()
        return DateWindow(start=today, end=self.__shift(today, self.default_forward_span_days))

    @staticmethod
    def __shift(day: date, days: int) -> date:
        """Move a date by whole calendar days.

        Raises:
            InvalidDateError: When the result lies outside the supported calendar range.
        """
        try:
            return day + timedelta(days=days)
        except OverflowError as exc:
            raise InvalidDateError(
                f"Window around {day} is out of range. Dates must lie between {date.min} and {date.max}."
            ) from exc

    def __parse_optional(self, value: DateInput, name: str) -> Optional[date]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return parse_date(value, name)
