"""Tests for holiday tables, holiday filters, the holiday cache, and the holiday overlay."""

import threading
import time
from datetime import date

import pytest

from bidline.analysis.expander import CycleExpander
from bidline.analysis.holidays import (
    HolidayCache,
    HolidayOverlay,
    HolidayProvider,
    StaticHolidayProvider,
    TableHolidayProvider,
    split_jurisdiction,
)
from bidline.domain.errors import ConfigurationError, ProviderError
from bidline.domain.models import CycleTemplate, Holiday, HolidayFilter

# Year-end table used where the exact set of holidays matters
YEAR_END = TableHolidayProvider(
    {
        ("CA", 2025): [
            {"name": "Christmas Day", "date": "2025-12-25"},
            {"name": "Boxing Day", "date": "2025-12-26"},
        ],
        ("CA", 2026): [{"name": "New Year's Day", "date": "2026-01-01"}],
    }
)


class CountingProvider(HolidayProvider):
    """Wraps a provider, counting calls and optionally failing some years."""

    def __init__(self, inner=None, fail_years=(), delay=0.0):
        self.inner = inner or YEAR_END
        self.fail_years = set(fail_years)
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def get_holidays(self, jurisdiction, year):
        with self._lock:
            self.calls.append((jurisdiction, year))
        if self.delay:
            time.sleep(self.delay)
        if year in self.fail_years:
            raise ProviderError(jurisdiction, year)
        return self.inner.get_holidays(jurisdiction, year)


def expand(codes, start, cycles=1):
    return CycleExpander().expand(CycleTemplate.from_codes(codes), start, cycles)


def by_date(holidays):
    return {h.holiday_date: h for h in holidays}


class TestSplitJurisdiction:
    """Tests for split_jurisdiction."""

    def test_country_only(self):
        assert split_jurisdiction("ca") == ("CA", None)

    def test_country_and_subdivision(self):
        assert split_jurisdiction(" CA-on ") == ("CA", "ON")


class TestStaticHolidayProvider:
    """Tests for StaticHolidayProvider, backed by the holidays package."""

    @pytest.fixture
    def provider(self):
        return StaticHolidayProvider()

    def test_canada_2025(self, provider):
        """Nationwide Canadian public holidays for 2025."""
        holidays = by_date(provider.get_holidays("CA", 2025))

        assert date(2025, 1, 1) in holidays
        assert holidays[date(2025, 4, 18)].name == "Good Friday"
        assert holidays[date(2025, 7, 1)].name == "Canada Day"
        assert holidays[date(2025, 9, 1)].name == "Labour Day"
        assert holidays[date(2025, 12, 25)].name == "Christmas Day"
        assert all(h.is_global for h in holidays.values())
        assert all(h.types == ("Public",) for h in holidays.values())

    def test_us_2025(self, provider):
        """US federal holidays for 2025."""
        holidays = by_date(provider.get_holidays("us", 2025))

        assert date(2025, 5, 26) in holidays
        assert date(2025, 7, 4) in holidays
        assert date(2025, 9, 1) in holidays
        assert date(2025, 12, 25) in holidays
        assert {h.jurisdiction for h in holidays.values()} == {"US"}

    def test_regional_holidays_marked(self, provider):
        """Ontario adds Family Day as a regional holiday."""
        nationwide = by_date(provider.get_holidays("CA", 2025))
        ontario = by_date(provider.get_holidays("CA-ON", 2025))

        assert date(2025, 2, 17) not in nationwide
        family_day = ontario[date(2025, 2, 17)]
        assert not family_day.is_global
        assert family_day.subdivisions == ("CA-ON",)
        assert ontario[date(2025, 7, 1)].is_global

    def test_sorted_by_date(self, provider):
        dates = [h.holiday_date for h in provider.get_holidays("CA", 2025)]
        assert dates == sorted(dates)

    def test_observances(self):
        """Observances add eves and observance days that clash with nothing."""
        plain = StaticHolidayProvider().get_holidays("CA", 2025)
        holidays = by_date(StaticHolidayProvider(include_observances=True).get_holidays("CA", 2025))

        assert len(holidays) == len(plain) + 6
        assert holidays[date(2025, 12, 24)].name == "Christmas Eve"
        assert holidays[date(2025, 12, 24)].types == ("Optional",)
        assert holidays[date(2025, 10, 31)].types == ("Observance",)
        assert not holidays[date(2025, 10, 31)].is_global

    def test_unknown_jurisdiction(self, provider):
        with pytest.raises(ProviderError):
            provider.get_holidays("XX", 2025)

    def test_unknown_subdivision(self, provider):
        with pytest.raises(ProviderError):
            provider.get_holidays("CA-ZZ", 2025)

    def test_cache_key_follows_settings(self):
        """Providers with equal settings share tables; different settings do not."""
        assert StaticHolidayProvider().cache_key() == StaticHolidayProvider().cache_key()
        assert (
            StaticHolidayProvider().cache_key()
            != StaticHolidayProvider(include_observances=True).cache_key()
        )


class TestHolidayFilter:
    """Tests for HolidayFilter and its presets."""

    @pytest.fixture
    def holidays(self):
        return [
            Holiday("CA-ON", date(2025, 1, 1), "New Year's Day"),
            Holiday("CA-ON", date(2025, 2, 17), "Family Day", is_global=False, subdivisions=("CA-ON",)),
            Holiday("CA-ON", date(2025, 3, 17), "St. Patrick's Day", types=("Observance",), is_global=False),
            Holiday("CA-ON", date(2025, 8, 4), "Civic Holiday", types=("Optional",), is_global=False,
                    subdivisions=("CA-ON",)),
            Holiday("CA-ON", date(2025, 12, 24), "Christmas Eve", types=("Optional",), is_global=False),
            Holiday("CA-ON", date(2025, 12, 25), "Christmas Day"),
        ]

    def names(self, holidays):
        return [h.name for h in holidays]

    def test_empty_filter_keeps_everything(self, holidays):
        assert HolidayFilter().apply(holidays) == holidays

    def test_only_global(self, holidays):
        kept = HolidayFilter(only_global=True).apply(holidays)
        assert self.names(kept) == ["New Year's Day", "Christmas Day"]

    def test_subdivisions(self, holidays):
        """Excluded subdivisions drop their holidays; included ones limit regional holidays."""
        assert "Family Day" not in self.names(HolidayFilter(exclude_subdivisions=("ca-on",)).apply(holidays))

        kept = HolidayFilter(include_subdivisions=("CA-QC",)).apply(holidays)
        assert "Family Day" not in self.names(kept)
        assert "New Year's Day" in self.names(kept)

    def test_types(self, holidays):
        public = HolidayFilter(include_types=("public",)).apply(holidays)
        assert self.names(public) == ["New Year's Day", "Family Day", "Christmas Day"]

        no_optional = HolidayFilter(exclude_types=("Optional",)).apply(holidays)
        assert "Christmas Eve" not in self.names(no_optional)
        assert "St. Patrick's Day" in self.names(no_optional)

    def test_names_ignore_case(self, holidays):
        kept = HolidayFilter(include_names=("christmas day",)).apply(holidays)
        assert self.names(kept) == ["Christmas Day"]

    def test_workplace_standard(self, holidays):
        kept = HolidayFilter.preset("workplace_standard").apply(holidays)
        assert self.names(kept) == ["New Year's Day", "Christmas Day"]

    def test_common_only(self, holidays):
        kept = HolidayFilter.preset("common_only").apply(holidays)
        assert self.names(kept) == ["New Year's Day", "Civic Holiday", "Christmas Eve", "Christmas Day"]

    def test_essential_only(self, holidays):
        kept = HolidayFilter.preset("essential_only").apply(holidays)
        assert self.names(kept) == ["New Year's Day", "Christmas Day"]

    def test_no_obscure(self):
        holidays = [
            Holiday("CA-MB", date(2025, 2, 17), "Louis Riel Day", is_global=False),
            Holiday("CA-MB", date(2025, 7, 1), "Canada Day"),
        ]
        kept = HolidayFilter.preset("no_obscure").apply(holidays)
        assert self.names(kept) == ["Canada Day"]

    def test_preset_names_normalized(self):
        assert HolidayFilter.preset("Workplace-Standard") == HolidayFilter.preset("workplace_standard")

    def test_unknown_preset(self):
        with pytest.raises(ConfigurationError, match="essential_only"):
            HolidayFilter.preset("everything")


class TestHolidayOverlay:
    """Tests for HolidayOverlay."""

    def test_year_spanning_schedule(self):
        """Each date is checked against its own year's table."""
        provider = CountingProvider()
        overlay = HolidayOverlay(provider, HolidayCache())
        shifts = expand(["A"] * 7, date(2025, 12, 24), 2)  # Dec 24 .. Jan 6

        overlap = overlay.overlay(shifts, "CA")

        assert overlap.worked == 3
        assert [d.holiday_date for d in overlap.details] == [
            date(2025, 12, 25),
            date(2025, 12, 26),
            date(2026, 1, 1),
        ]
        assert [d.code for d in overlap.details] == ["A", "A", "A"]
        assert sorted(provider.calls) == [("CA", 2025), ("CA", 2026)]

    def test_static_provider_year_end(self):
        """The default provider finds Christmas and New Year's Day across a year boundary."""
        shifts = expand(["A"] * 7, date(2025, 12, 24), 2)

        overlap = HolidayOverlay().overlay(shifts, "CA")

        worked = {d.holiday_date for d in overlap.details}
        assert {date(2025, 12, 25), date(2026, 1, 1)} <= worked

    def test_wrong_year_entries_never_match(self):
        """An entry dated outside the requested year is discarded."""
        provider = TableHolidayProvider(
            {
                ("CA", 2025): [
                    {"name": "Christmas Day", "date": "2025-12-25"},
                    {"name": "Misfiled", "date": "2024-12-31"},
                ],
            }
        )
        overlay = HolidayOverlay(provider)
        shifts = expand(["A"] * 3, date(2024, 12, 30))  # Dec 30, Dec 31, Jan 1

        overlap = overlay.overlay(shifts, "CA")

        assert overlap.worked == 0
        assert overlap.details == []

    def test_offset_dates_normalized(self):
        """Provider dates with a time and offset match by calendar date."""
        provider = TableHolidayProvider(
            {("CA", 2025): [{"localName": "Christmas Day", "date": "2025-12-25T00:00:00-05:00"}]}
        )
        overlap = HolidayOverlay(provider).overlay(expand(["A"], date(2025, 12, 25)), "CA")

        assert overlap.worked == 1
        assert overlap.details[0].name == "Christmas Day"

    def test_off_days_counted_separately(self):
        """A holiday on a day off is never counted as worked."""
        shifts = expand([None, "A"], date(2025, 12, 25))  # Dec 25 off, Dec 26 worked
        overlap = HolidayOverlay(YEAR_END).overlay(shifts, "CA")

        assert overlap.worked == 1
        assert overlap.off == 1
        assert overlap.details[0].name == "Boxing Day"

    def test_provider_failure_contributes_zero(self):
        """A failing year is skipped while other years still count."""
        provider = CountingProvider(fail_years={2026})
        shifts = expand(["A"] * 7, date(2025, 12, 24), 2)

        overlap = HolidayOverlay(provider).overlay(shifts, "CA")

        assert overlap.worked == 2  # Dec 25, Dec 26; Jan 1 lost with 2026

    def test_unknown_jurisdiction_counts_nothing(self):
        """An unsupported jurisdiction yields zero holidays, not an error."""
        overlap = HolidayOverlay().overlay(expand(["A"], date(2025, 12, 25)), "ZZ")
        assert overlap.worked == 0

    def test_holiday_objects_accepted(self):
        """Providers may return Holiday objects or (date, name) tuples."""
        provider = TableHolidayProvider(
            {
                ("CA", 2025): [
                    Holiday("CA", date(2025, 7, 1), "Canada Day"),
                    (date(2025, 7, 2), "Extra Day"),
                ]
            }
        )
        overlap = HolidayOverlay(provider).overlay(expand(["A", "A"], date(2025, 7, 1)), "CA")
        assert [d.name for d in overlap.details] == ["Canada Day", "Extra Day"]

    def test_nager_fields_read(self):
        """Dict entries carry their types, global flag and counties."""
        provider = TableHolidayProvider(
            {
                ("CA", 2025): [
                    {"date": "2025-08-04", "localName": "Civic Holiday", "types": ["Optional"],
                     "global": False, "counties": ["CA-ON"]},
                ]
            }
        )
        (holiday,) = HolidayOverlay(provider).holidays_for_year("CA", 2025)

        assert holiday.types == ("Optional",)
        assert not holiday.is_global
        assert holiday.subdivisions == ("CA-ON",)

    def test_filter_applied(self):
        """Holidays rejected by the overlay's filter do not count."""
        provider = TableHolidayProvider(
            {
                ("CA", 2025): [
                    {"date": "2025-12-24", "name": "Christmas Eve", "types": ["Optional"], "global": False},
                    {"date": "2025-12-25", "name": "Christmas Day"},
                ]
            }
        )
        shifts = expand(["A", "A"], date(2025, 12, 24))

        unfiltered = HolidayOverlay(provider).overlay(shifts, "CA")
        filtered = HolidayOverlay(provider, holiday_filter=HolidayFilter.preset("workplace_standard")).overlay(
            shifts, "CA"
        )

        assert unfiltered.worked == 2
        assert filtered.worked == 1
        assert filtered.details[0].name == "Christmas Day"

    def test_filters_share_cached_tables(self):
        """Overlays differing only by filter reuse one fetched table."""
        provider = CountingProvider()
        cache = HolidayCache()
        shifts = expand(["A"], date(2025, 12, 25))

        HolidayOverlay(provider, cache).overlay(shifts, "CA")
        HolidayOverlay(provider, cache, HolidayFilter(only_global=True)).overlay(shifts, "CA")

        assert provider.calls == [("CA", 2025)]


class TestHolidayCache:
    """Tests for HolidayCache."""

    def test_single_fetch_per_key(self):
        """Repeated lookups reuse the cached table."""
        provider = CountingProvider()
        overlay = HolidayOverlay(provider, HolidayCache())
        shifts = expand(["A"] * 7, date(2025, 6, 1))

        overlay.overlay(shifts, "CA")
        overlay.overlay(shifts, "CA")

        assert provider.calls == [("CA", 2025)]

    def test_one_in_flight_fetch_under_concurrency(self):
        """Concurrent callers wait on the first fetch instead of repeating it."""
        provider = CountingProvider(delay=0.05)
        overlay = HolidayOverlay(provider, HolidayCache())
        barrier = threading.Barrier(8)
        results = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            table = overlay.holidays_for_year("CA", 2025)
            with results_lock:
                results.append(table)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert provider.calls == [("CA", 2025)]
        assert len(results) == 8
        assert all(r == results[0] for r in results)

    def test_providers_kept_apart(self):
        """Two providers sharing a cache each get their own table."""
        cache = HolidayCache()
        shifts = expand(["A", "A"], date(2025, 12, 24))
        christmas_only = TableHolidayProvider({("CA", 2025): [(date(2025, 12, 25), "Christmas Day")]})
        with_eve = TableHolidayProvider(
            {("CA", 2025): [(date(2025, 12, 24), "Christmas Eve"), (date(2025, 12, 25), "Christmas Day")]}
        )

        first = HolidayOverlay(christmas_only, cache).overlay(shifts, "CA")
        second = HolidayOverlay(with_eve, cache).overlay(shifts, "CA")

        assert first.worked == 1
        assert second.worked == 2
        assert len(cache) == 2

    def test_failures_not_cached(self):
        """A failed fetch is retried by the next caller."""
        cache = HolidayCache()
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("temporary outage")
            return [Holiday("CA", date(2025, 1, 1), "New Year's Day")]

        with pytest.raises(RuntimeError):
            cache.get_or_fetch("CA", 2025, flaky)
        assert ("CA", 2025) not in cache

        table = cache.get_or_fetch("CA", 2025, flaky)
        assert len(table) == 1
        assert len(attempts) == 2

    def test_interrupted_fetch_not_cached(self):
        """A fetch interrupted by KeyboardInterrupt leaves no entry behind."""
        cache = HolidayCache()

        def interrupted():
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            cache.get_or_fetch("CA", 2025, interrupted)

        assert ("CA", 2025) not in cache
        assert cache.get_or_fetch("CA", 2025, lambda: []) == ()

    def test_interrupted_fetch_releases_waiters(self):
        """Callers waiting on an interrupted fetch get the error instead of hanging."""
        cache = HolidayCache()
        fetch_started = threading.Event()
        release_fetch = threading.Event()
        waiter_errors = []

        def interrupted():
            fetch_started.set()
            release_fetch.wait(5)
            raise KeyboardInterrupt

        def owner():
            try:
                cache.get_or_fetch("CA", 2025, interrupted)
            except KeyboardInterrupt:
                pass

        def waiter():
            try:
                cache.get_or_fetch("CA", 2025, lambda: [])
            except KeyboardInterrupt as e:
                waiter_errors.append(e)

        owner_thread = threading.Thread(target=owner)
        owner_thread.start()
        assert fetch_started.wait(5)
        waiter_thread = threading.Thread(target=waiter)
        waiter_thread.start()
        time.sleep(0.1)
        release_fetch.set()

        owner_thread.join(5)
        waiter_thread.join(5)

        assert not waiter_thread.is_alive()
        assert len(waiter_errors) == 1

    def test_invalidate_by_jurisdiction(self):
        """Invalidation drops only the named jurisdiction."""
        cache = HolidayCache()
        cache.get_or_fetch("CA", 2025, lambda: [])
        cache.get_or_fetch("US", 2025, lambda: [])

        cache.invalidate("ca")

        assert ("CA", 2025) not in cache
        assert ("US", 2025) in cache

    def test_clear(self):
        cache = HolidayCache()
        cache.get_or_fetch("CA", 2025, lambda: [])
        cache.clear()
        assert len(cache) == 0
