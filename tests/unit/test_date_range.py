from datetime import date

import pytest

from booking_engine.domain.errors import InvalidDateRangeError
from booking_engine.domain.value_objects.date_range import DateRange


def _range(start_day: int, end_day: int) -> DateRange:
    return DateRange(start=date(2026, 6, start_day), end=date(2026, 6, end_day))


def test_days_counts_nights():
    assert _range(1, 5).days == 4


def test_end_must_be_after_start():
    with pytest.raises(InvalidDateRangeError):
        _range(5, 5)
    with pytest.raises(InvalidDateRangeError):
        _range(5, 1)


def test_touching_ranges_do_not_overlap():
    assert not _range(1, 5).overlaps_with(_range(5, 8))
    assert not _range(5, 8).overlaps_with(_range(1, 5))


@pytest.mark.parametrize(
    "other",
    [(4, 6), (2, 3), (1, 5), (1, 9)],
)
def test_overlapping_ranges(other):
    assert _range(1, 5).overlaps_with(_range(*other))


def test_contains_is_half_open():
    r = _range(1, 5)
    assert r.contains(date(2026, 6, 1))
    assert r.contains(date(2026, 6, 4))
    assert not r.contains(date(2026, 6, 5))


def test_str():
    assert str(_range(1, 5)) == "2026-06-01..2026-06-05"
