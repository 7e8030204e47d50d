"""Tests for the iCalendar feed serializer."""
from datetime import date, datetime, time, timezone

import pytest
from icalendar import Calendar

from gamenight.services.ics import (
    build_feed_events, escape_text, feed_filename, generate_calendar, unescape_text,
)

GAME = {
    'name': 'Curse of Strahd',
    'description': None,
    'default_start_time': '19:00:00',
    'default_end_time': '23:00:00',
}


def _events(payload):
    cal = Calendar.from_ical(payload)
    return [c for c in cal.walk() if c.name == 'VEVENT']


@pytest.mark.parametrize('raw, expected', [
    ('path\\to\\file', 'path\\\\to\\\\file'),
    ('first;second', 'first\\;second'),
    ('one,two', 'one\\,two'),
    ('line1\nline2', 'line1\\nline2'),
    ('line1\r\nline2', 'line1\\nline2'),
    ('line1\rline2', 'line1\\nline2'),
    ('bell\x07 and nul\x00', 'bell and nul'),
    ('tab\tkept', 'tab\tkept'),
    ('a\\b;c,d\ne', 'a\\\\b\\;c\\,d\\ne'),
    ('', ''),
    ('Hello World', 'Hello World'),
])
def test_escape_text(raw, expected):
    assert escape_text(raw) == expected


@pytest.mark.parametrize('raw', [
    'Bring dice, snacks; and a pencil.\nSecond line',
    'C:\\games\\strahd; v2, final',
    '\\n is not a newline',
])
def test_unescape_reverses_escape(raw):
    assert unescape_text(escape_text(raw)) == raw


@pytest.mark.parametrize('raw', ['a\rb', 'a\r\nb', 'a\nb'])
def test_line_endings_unescape_to_newline(raw):
    assert unescape_text(escape_text(raw)) == 'a\nb'


def test_bare_carriage_return_never_reaches_the_feed():
    game = dict(GAME, description='line1\rline2')
    payload = generate_calendar(game, [{'id': 1, 'date': '2025-12-05'}])
    assert b'\r' not in payload.replace(b'\r\n', b'')
    [event] = _events(payload)
    assert str(event.get('description')) == 'line1\nline2'
    assert str(Calendar.from_ical(payload)['X-WR-CALDESC']) == 'line1\nline2'


def test_empty_feed_is_well_formed():
    payload = generate_calendar(GAME, [])
    text = payload.decode('utf-8')
    assert text.startswith('BEGIN:VCALENDAR\r\n')
    assert text.rstrip('\r\n').endswith('END:VCALENDAR')
    assert 'BEGIN:VEVENT' not in text
    cal = Calendar.from_ical(payload)
    assert str(cal.get('version')) == '2.0'
    assert str(cal.get('method')) == 'PUBLISH'


def test_default_times_apply_when_session_has_none():
    payload = generate_calendar(GAME, [{'id': 7, 'date': '2025-12-05'}])
    [event] = _events(payload)
    assert event.decoded('dtstart') == datetime(2025, 12, 5, 19, 0)
    assert event.decoded('dtend') == datetime(2025, 12, 5, 23, 0)
    assert str(event.get('summary')) == 'Curse of Strahd'
    assert 'description' not in event
    assert str(event.get('uid')) == 'session-7@gamenight.local'
    assert b'DTSTART:20251205T190000' in payload


def test_session_time_overrides_default():
    session = {'id': 1, 'date': date(2025, 12, 5), 'start_time': time(18, 30), 'end_time': '22:00'}
    [event] = _events(generate_calendar(GAME, [session]))
    assert event.decoded('dtstart') == datetime(2025, 12, 5, 18, 30)
    assert event.decoded('dtend') == datetime(2025, 12, 5, 22, 0)


def test_all_day_without_times():
    game = {'name': 'Board Games', 'description': None}
    payload = generate_calendar(game, [{'id': 1, 'date': '2025-12-05'}])
    [event] = _events(payload)
    assert event.decoded('dtstart') == date(2025, 12, 5)
    assert event.decoded('dtend') == date(2025, 12, 6)
    assert b'DTSTART;VALUE=DATE:20251205' in payload


def test_end_past_midnight_rolls_to_next_day():
    game = dict(GAME, default_end_time='01:00')
    [event] = _events(generate_calendar(game, [{'id': 1, 'date': '2025-12-05'}]))
    assert event.decoded('dtend') == datetime(2025, 12, 6, 1, 0)


def test_description_with_reserved_characters_round_trips():
    description = 'Bring dice, snacks; and a pencil.\nWe start on time.'
    game = dict(GAME, description=description)
    payload = generate_calendar(game, [{'id': 1, 'date': '2025-12-05'}])
    assert b'Bring dice\\, snacks\\; and a pencil.\\nWe start on time.' in payload.replace(b'\r\n ', b'')
    [event] = _events(payload)
    assert str(event.get('description')) == description


def test_output_is_deterministic():
    sessions = [
        {'id': 1, 'date': '2025-12-05', 'created_at': datetime(2025, 11, 20, 8, 30, 15, 123)},
        {'id': 2, 'date': '2025-12-12'},
    ]
    assert generate_calendar(GAME, sessions) == generate_calendar(GAME, sessions)
    [first, second] = _events(generate_calendar(GAME, sessions))
    assert b'DTSTAMP:20251120T083015Z' in generate_calendar(GAME, sessions)
    assert first.decoded('dtstamp').year == 2025
    assert second.decoded('dtstamp').date() == date(2025, 12, 12)


def test_bad_session_rows_are_skipped():
    sessions = [{'id': 1, 'date': 'soon'}, {'id': 2, 'date': '2025-12-12'}]
    events = build_feed_events(GAME, sessions)
    assert [e.uid for e in events] == ['session-2@gamenight.local']


def test_bad_created_at_falls_back_to_date_stamp():
    sessions = [
        {'id': 1, 'date': '2025-12-05', 'created_at': 'nope'},
        {'id': 2, 'date': '2025-12-06'},
    ]
    events = build_feed_events(GAME, sessions)
    assert [e.uid for e in events] == ['session-1@gamenight.local', 'session-2@gamenight.local']
    assert events[0].stamp == datetime(2025, 12, 5, tzinfo=timezone.utc)
    assert len(_events(generate_calendar(GAME, sessions))) == 2


def test_uid_falls_back_to_date_and_index():
    events = build_feed_events(GAME, [{'date': '2025-12-05'}, {'date': '2025-12-05'}])
    assert [e.uid for e in events] == [
        '20251205-0@gamenight.local', '20251205-1@gamenight.local',
    ]


def test_timezone_adds_tzid_and_vtimezone():
    game = dict(GAME, timezone='America/Los_Angeles')
    payload = generate_calendar(game, [{'id': 1, 'date': '2025-12-05'}])
    assert b'DTSTART;TZID=America/Los_Angeles:20251205T190000' in payload
    assert b'BEGIN:VTIMEZONE' in payload
    assert b'X-WR-TIMEZONE:America/Los_Angeles' in payload


def test_feed_filename():
    assert feed_filename('Curse of Strahd!') == 'Curse_of_Strahd_.ics'
