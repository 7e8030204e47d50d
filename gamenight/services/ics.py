"""iCalendar feed for a game's confirmed sessions.

The feed is rebuilt on every request and must be byte-for-byte stable for
the same input, so nothing here reads the clock: DTSTAMP comes from the
session row and UIDs from session ids.
"""
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from icalendar import Calendar, Event, vText

from gamenight.services.formatting import parse_time
from gamenight.services.play_dates import parse_iso_date

logger = logging.getLogger(__name__)

DEFAULT_PRODID = '-//Game Night//Session Calendar//EN'
DEFAULT_UID_DOMAIN = 'gamenight.local'

_ESCAPES = (
    ('\\', '\\\\'),
    (';', '\\;'),
    (',', '\\,'),
    ('\r\n', '\\n'),
    ('\n', '\\n'),
    ('\r', '\\n'),
)
# TEXT allows no control characters other than HTAB
_CONTROL_RE = re.compile(r'[\x00-\x08\x0b-\x1f\x7f]')
_UNESCAPE_RE = re.compile(r'\\([\\;,nN])')


def escape_text(text):
    """Escape a TEXT value (RFC 5545 3.3.11). Backslash must go first.

    Any line ending becomes ``\\n``; other control characters except tab
    are dropped.
    """
    escaped = str(text)
    for raw, replacement in _ESCAPES:
        escaped = escaped.replace(raw, replacement)
    return _CONTROL_RE.sub('', escaped)


def unescape_text(text):
    return _UNESCAPE_RE.sub(
        lambda m: '\n' if m.group(1) in 'nN' else m.group(1), str(text)
    )


class FeedText(vText):
    """``vText`` that serializes through ``escape_text``."""

    def to_ical(self):
        return escape_text(self).encode(self.encoding)


@dataclass
class FeedEvent:
    uid: str
    day: date
    stamp: datetime
    title: str
    description: Optional[str] = None
    start: Optional[time] = None
    end: Optional[time] = None

    @property
    def all_day(self):
        return self.start is None or self.end is None


def _value(obj, name):
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _optional_time(raw):
    if raw is None or raw == '':
        return None
    return parse_time(raw)


def _event_stamp(session, day):
    created_at = _value(session, 'created_at')
    if isinstance(created_at, str):
        try:
            created_at = datetime.fromisoformat(created_at)
        except ValueError:
            logger.warning('Ignoring invalid created_at %r on session %r',
                           created_at, _value(session, 'id'))
            created_at = None
    if isinstance(created_at, datetime):
        if created_at.tzinfo is None:
            return created_at.replace(tzinfo=timezone.utc, microsecond=0)
        return created_at.astimezone(timezone.utc).replace(microsecond=0)
    return datetime.combine(day, time(0, 0), tzinfo=timezone.utc)


def build_feed_events(game, sessions, uid_domain=DEFAULT_UID_DOMAIN):
    """Resolve sessions into ``FeedEvent`` values.

    Session times win over the game's default times; without both a start
    and an end the event is all-day. Sessions with a bad date or time are
    skipped and logged.
    """
    default_start = _optional_time(_value(game, 'default_start_time'))
    default_end = _optional_time(_value(game, 'default_end_time'))
    title = _value(game, 'name') or ''
    description = _value(game, 'description') or None

    events = []
    for index, session in enumerate(sessions or []):
        try:
            day = parse_iso_date(_value(session, 'date'))
            start = _optional_time(_value(session, 'start_time')) or default_start
            end = _optional_time(_value(session, 'end_time')) or default_end
        except (TypeError, ValueError):
            logger.warning('Skipping session with invalid date/time: %r', session)
            continue

        session_id = _value(session, 'id')
        if session_id is not None:
            uid = f'session-{session_id}@{uid_domain}'
        else:
            uid = f'{day.strftime("%Y%m%d")}-{index}@{uid_domain}'

        events.append(FeedEvent(
            uid=uid, day=day, stamp=_event_stamp(session, day),
            title=title, description=description, start=start, end=end,
        ))
    return events


def _resolve_zone(tzid):
    if not tzid:
        return None
    try:
        return ZoneInfo(tzid)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning('Unknown timezone %r, emitting floating times', tzid)
        return None


def _to_vevent(feed_event, zone):
    event = Event()
    event.add('uid', FeedText(feed_event.uid))
    event.add('dtstamp', feed_event.stamp)
    if feed_event.all_day:
        event.add('dtstart', feed_event.day)
        event.add('dtend', feed_event.day + timedelta(days=1))
    else:
        start = datetime.combine(feed_event.day, feed_event.start, tzinfo=zone)
        end = datetime.combine(feed_event.day, feed_event.end, tzinfo=zone)
        if end <= start:
            end += timedelta(days=1)
        event.add('dtstart', start)
        event.add('dtend', end)
    event.add('summary', FeedText(feed_event.title))
    if feed_event.description:
        event.add('description', FeedText(feed_event.description))
    return event


def generate_calendar(game, sessions, prodid=DEFAULT_PRODID, uid_domain=DEFAULT_UID_DOMAIN):
    """Serialize confirmed ``sessions`` of ``game`` to iCalendar bytes."""
    zone = _resolve_zone(_value(game, 'timezone'))

    cal = Calendar()
    cal.add('prodid', prodid)
    cal.add('version', '2.0')
    cal.add('calscale', 'GREGORIAN')
    cal.add('method', 'PUBLISH')
    cal.add('x-wr-calname', FeedText(_value(game, 'name') or ''))
    if _value(game, 'description'):
        cal.add('x-wr-caldesc', FeedText(_value(game, 'description')))
    if zone is not None:
        cal.add('x-wr-timezone', FeedText(zone.key))

    events = build_feed_events(game, sessions, uid_domain=uid_domain)
    for feed_event in events:
        cal.add_component(_to_vevent(feed_event, zone))

    if zone is not None and any(not e.all_day for e in events):
        cal.add_missing_timezones()

    return cal.to_ical()


def feed_filename(game_name):
    return re.sub(r'[^a-zA-Z0-9]', '_', game_name or '') + '.ics'
