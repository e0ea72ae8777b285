"""Holiday tables and holiday overlay.

Holiday tables come from a pluggable HolidayProvider; the default provider
reads the `holidays` package. Lookups go through an injected HolidayCache so
each (provider, jurisdiction, year) table is fetched at most once, even when
many threads analyze schedules at the same time. A HolidayFilter applied by
the overlay decides which cached holidays count.
"""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Hashable, Iterable, Optional, Union

import holidays as holidays_lib

from bidline.domain.errors import ProviderError
from bidline.domain.models import (
    DatedShift,
    Holiday,
    HolidayFilter,
    HolidayOverlap,
    HolidayWorked,
    coerce_date,
)

logger = logging.getLogger(__name__)

HolidayEntry = Union[Holiday, dict, tuple]

# Commonly observed days that are not statutory, as (month, day, name, type)
OBSERVANCES = (
    (2, 2, "Groundhog Day", "Observance"),
    (2, 14, "Valentine's Day", "Observance"),
    (3, 17, "St. Patrick's Day", "Observance"),
    (10, 31, "Halloween", "Observance"),
    (12, 24, "Christmas Eve", "Optional"),
    (12, 31, "New Year's Eve", "Optional"),
)


def split_jurisdiction(jurisdiction: str) -> tuple[str, Optional[str]]:
    """Split "CA-ON" into ("CA", "ON"); "CA" gives ("CA", None)."""
    code = jurisdiction.strip().upper()
    country, _, subdivision = code.partition("-")
    return country, subdivision or None


class HolidayProvider(ABC):
    """Abstract source of holiday tables."""

    @abstractmethod
    def get_holidays(self, jurisdiction: str, year: int) -> list[HolidayEntry]:
        """Get the holidays of one jurisdiction in one year.

        Args:
            jurisdiction: Jurisdiction code (e.g., "CA" or "CA-ON").
            year: Calendar year.

        Returns:
            Holiday entries: Holiday objects, Nager-style dicts ("date",
            "name" or "localName", optional "types", "global", "counties"),
            or (date, name) tuples. Dates may be date objects or ISO strings.

        Raises:
            ProviderError: If the table cannot be obtained.
        """
        pass

    def cache_key(self) -> Hashable:
        """Identity of this provider's tables inside a shared HolidayCache.

        Providers returning equal keys share cached tables.
        """
        return (type(self).__name__, id(self))


@dataclass
class StaticHolidayProvider(HolidayProvider):
    """Holiday tables from the `holidays` package, no I/O.

    Any country the package supports works; "CA-ON" style codes add the
    subdivision's regional holidays to the nationwide ones. Unknown
    jurisdictions raise ProviderError.

    Attributes:
        categories: Package holiday categories to include (e.g., "public",
            "optional"). Each category becomes the holiday's type.
        observed: Also list the substitute days the package adds when a
            holiday falls on a weekend.
        include_observances: Also list common observances (Christmas Eve,
            New Year's Eve, Halloween, and others) that do not clash by
            name or date with a listed holiday.
    """

    categories: tuple[str, ...] = ("public",)
    observed: bool = False
    include_observances: bool = False

    def cache_key(self) -> Hashable:
        return ("static", tuple(self.categories), self.observed, self.include_observances)

    def get_holidays(self, jurisdiction: str, year: int) -> list[Holiday]:
        country, subdivision = split_jurisdiction(jurisdiction)
        code = jurisdiction.strip().upper()

        nationwide = self._entries(country, None, year, jurisdiction)
        result = [
            Holiday(code, holiday_date, name, types=types)
            for (holiday_date, name), types in nationwide.items()
        ]
        if subdivision is not None:
            regional = self._entries(country, subdivision, year, jurisdiction)
            result.extend(
                Holiday(
                    code,
                    holiday_date,
                    name,
                    types=types,
                    is_global=False,
                    subdivisions=(f"{country}-{subdivision}",),
                )
                for (holiday_date, name), types in regional.items()
                if (holiday_date, name) not in nationwide
            )

        if self.include_observances:
            names = {h.name.casefold() for h in result}
            dates = {h.holiday_date for h in result}
            for month, day, name, kind in OBSERVANCES:
                holiday_date = date(year, month, day)
                if name.casefold() in names or holiday_date in dates:
                    continue
                result.append(Holiday(code, holiday_date, name, types=(kind,), is_global=False))

        result.sort(key=lambda h: (h.holiday_date, h.name))
        return result

    def _entries(
        self, country: str, subdivision: Optional[str], year: int, jurisdiction: str
    ) -> dict[tuple[date, str], tuple[str, ...]]:
        """Package holidays keyed by (date, name), mapped to their types."""
        entries: dict[tuple[date, str], tuple[str, ...]] = {}
        for category in self.categories:
            try:
                table = holidays_lib.country_holidays(
                    country,
                    subdiv=subdivision,
                    years=year,
                    observed=self.observed,
                    categories=(category,),
                )
            except NotImplementedError as e:
                raise ProviderError(jurisdiction, year, f"No holiday table for {jurisdiction!r}: {e}") from e
            kind = category.strip().capitalize()
            for holiday_date, names in sorted(table.items()):
                # The package joins several holidays on one date with "; "
                for name in names.split("; "):
                    key = (holiday_date, name)
                    if kind not in entries.get(key, ()):
                        entries[key] = entries.get(key, ()) + (kind,)
        return entries


@dataclass
class TableHolidayProvider(HolidayProvider):
    """Serves holidays from an explicit mapping.

    Attributes:
        tables: Entries keyed by (jurisdiction, year). Missing keys give an
            empty table.
    """

    tables: dict[tuple[str, int], list[HolidayEntry]] = field(default_factory=dict)

    def get_holidays(self, jurisdiction: str, year: int) -> list[HolidayEntry]:
        return list(self.tables.get((jurisdiction.strip().upper(), year), []))


class HolidayCache:
    """Thread-safe cache of holiday tables keyed by (source, jurisdiction, year).

    The source is the providing HolidayProvider's cache_key(), so overlays
    with different providers can share one cache. At most one fetch per key
    is in flight: the first caller fetches while later callers wait on its
    Future. Failed fetches are not cached, so the next caller retries.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[tuple[Hashable, str, int], Future] = {}

    def get_or_fetch(
        self,
        jurisdiction: str,
        year: int,
        fetch: Callable[[], Iterable[Holiday]],
        source: Hashable = None,
    ) -> tuple[Holiday, ...]:
        """Get a cached table, calling fetch to fill it on a miss.

        Raises:
            BaseException: Whatever fetch raised, for the fetching caller and
                for every caller waiting on it.
        """
        key = (source, jurisdiction.strip().upper(), year)
        with self._lock:
            future = self._entries.get(key)
            is_owner = future is None
            if is_owner:
                future = Future()
                self._entries[key] = future

        if not is_owner:
            return future.result()

        try:
            result = tuple(fetch())
        except BaseException as e:
            # Waiters must be released even on KeyboardInterrupt or SystemExit
            with self._lock:
                if self._entries.get(key) is future:
                    del self._entries[key]
            future.set_exception(e)
            raise
        future.set_result(result)
        return result

    def invalidate(self, jurisdiction: Optional[str] = None) -> None:
        """Drop cached tables for one jurisdiction, or all of them."""
        with self._lock:
            if jurisdiction is None:
                self._entries.clear()
                return
            code = jurisdiction.strip().upper()
            for key in [k for k in self._entries if k[1] == code]:
                del self._entries[key]

    def clear(self) -> None:
        self.invalidate()

    def __contains__(self, key: tuple[str, int]) -> bool:
        """Whether any source has a table for (jurisdiction, year)."""
        jurisdiction, year = key
        wanted = (jurisdiction.strip().upper(), year)
        with self._lock:
            return any(k[1:] == wanted for k in self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _normalize_entry(entry: HolidayEntry, jurisdiction: str) -> Holiday:
    if isinstance(entry, Holiday):
        return entry
    if isinstance(entry, dict):
        name = entry.get("localName") or entry.get("name") or ""
        counties = entry.get("counties") or ()
        return Holiday(
            jurisdiction,
            coerce_date(entry["date"]),
            name,
            types=tuple(entry.get("types") or ("Public",)),
            is_global=bool(entry.get("global", not counties)),
            subdivisions=tuple(counties),
        )
    holiday_date, name = entry
    return Holiday(jurisdiction, coerce_date(holiday_date), name)


class HolidayOverlay:
    """Counts holidays that fall on worked and off days of a dated sequence.

    Usage:
        overlay = HolidayOverlay(StaticHolidayProvider(), HolidayCache())
        overlap = overlay.overlay(dated_shifts, "CA")
    """

    def __init__(
        self,
        provider: Optional[HolidayProvider] = None,
        cache: Optional[HolidayCache] = None,
        holiday_filter: Optional[HolidayFilter] = None,
    ):
        """Initialize the overlay.

        Args:
            provider: Holiday table source. Uses StaticHolidayProvider if None.
            cache: Shared table cache. A private cache is created if None.
            holiday_filter: Which holidays count. All of them if None.
        """
        self.provider = provider or StaticHolidayProvider()
        self.cache = cache if cache is not None else HolidayCache()
        self.holiday_filter = holiday_filter

    def holidays_for_year(self, jurisdiction: str, year: int) -> tuple[Holiday, ...]:
        """Get one year's normalized, unfiltered table through the cache.

        Raises:
            Exception: Whatever the provider raised.
        """
        return self.cache.get_or_fetch(
            jurisdiction,
            year,
            lambda: self._fetch(jurisdiction, year),
            source=self.provider.cache_key(),
        )

    def _fetch(self, jurisdiction: str, year: int) -> list[Holiday]:
        logger.debug("Fetching holidays for %s %d", jurisdiction, year)
        holidays = []
        for entry in self.provider.get_holidays(jurisdiction, year):
            try:
                holiday = _normalize_entry(entry, jurisdiction)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable holiday entry %r for %s %d: %s", entry, jurisdiction, year, e)
                continue
            if holiday.year != year:
                logger.warning(
                    "Discarding holiday %s on %s from the %s %d table: wrong year",
                    holiday.name,
                    holiday.holiday_date.isoformat(),
                    jurisdiction,
                    year,
                )
                continue
            holidays.append(holiday)
        holidays.sort(key=lambda h: h.holiday_date)
        return holidays

    def overlay(self, dated_shifts: list[DatedShift], jurisdiction: str) -> HolidayOverlap:
        """Match a dated sequence against the jurisdiction's holidays.

        Only holidays passing the overlay's filter count. A year whose table
        cannot be fetched is logged and contributes no holidays.

        Args:
            dated_shifts: Expanded schedule days.
            jurisdiction: Holiday jurisdiction code.

        Returns:
            Worked and off holiday counts with worked-holiday detail.
        """
        by_date: dict[date, Holiday] = {}
        for year in sorted({s.shift_date.year for s in dated_shifts}):
            try:
                table = self.holidays_for_year(jurisdiction, year)
            except Exception as e:
                logger.warning(
                    "Holiday lookup failed for %s %d, counting no holidays that year: %s",
                    jurisdiction,
                    year,
                    e,
                )
                continue
            if self.holiday_filter is not None:
                table = self.holiday_filter.apply(table)
            for holiday in table:
                by_date.setdefault(holiday.holiday_date, holiday)

        overlap = HolidayOverlap()
        for shift in sorted(dated_shifts, key=lambda s: s.shift_date):
            holiday = by_date.get(shift.shift_date)
            if holiday is None:
                continue
            if shift.is_worked:
                overlap.worked += 1
                overlap.details.append(
                    HolidayWorked(holiday_date=shift.shift_date, name=holiday.name, code=shift.code)
                )
            else:
                overlap.off += 1
        return overlap
