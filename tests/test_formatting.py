"""Tests for time and weekday display helpers."""
from datetime import date, time

import pytest

from gamenight.services.formatting import (
    DAY_LABELS, day_of_week, format_time, format_time_range, parse_time,
)


@pytest.mark.parametrize('raw, expected', [
    ('00:00', '12:00 AM'),
    ('12:00', '12:00 PM'),
    ('14:30', '2:30 PM'),
    ('23:59', '11:59 PM'),
    ('09:15', '9:15 AM'),
    ('14:30:00', '2:30 PM'),
    (time(19, 5), '7:05 PM'),
])
def test_format_time(raw, expected):
    assert format_time(raw) == expected


def test_format_time_empty():
    assert format_time(None) == ''
    assert format_time('') == ''


@pytest.mark.parametrize('raw', ['ab:cd', '7pm', '19', '25:00'])
def test_format_time_unparseable(raw):
    assert format_time(raw) == ''
    assert format_time_range(raw, '23:00') == 'Until 11:00 PM'


def test_format_time_range():
    assert format_time_range('19:00', '23:00') == '7:00 PM - 11:00 PM'
    assert format_time_range('19:00', None) == 'After 7:00 PM'
    assert format_time_range(None, '23:00') == 'Until 11:00 PM'
    assert format_time_range(None, None) == ''


def test_parse_time():
    assert parse_time('19:00') == time(19, 0)
    assert parse_time('19:00:30') == time(19, 0, 30)
    for bad in ('7pm', '25:00', '', '19'):
        with pytest.raises(ValueError):
            parse_time(bad)


def test_day_of_week_is_sunday_based():
    assert day_of_week(date(2025, 12, 7)) == 0  # Sunday
    assert day_of_week(date(2025, 12, 5)) == 5  # Friday
    assert DAY_LABELS['full'][day_of_week(date(2025, 12, 6))] == 'Saturday'
