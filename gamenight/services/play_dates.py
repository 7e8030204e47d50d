"""Candidate play dates for a game's scheduling window.

A date qualifies when its weekday (0=Sunday) is one of the game's play days
or when it is listed as a special play date. The window is half-open:
``[today, today + N months)``.
"""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import relativedelta

from gamenight.services.formatting import day_of_week


def parse_iso_date(value):
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def _special_date_set(special_play_dates):
    special = set()
    for raw in special_play_dates or []:
        try:
            special.add(parse_iso_date(raw))
        except (TypeError, ValueError):
            continue
    return special


def window_end(today, scheduling_window_months):
    """Exclusive end of the scheduling window."""
    return today + relativedelta(months=scheduling_window_months)


def is_play_date(day, play_days, special_play_dates=()):
    if day_of_week(day) in set(play_days or []):
        return True
    return day in _special_date_set(special_play_dates)


class PlayDateWindow:
    """Restartable, ascending, duplicate-free sequence of candidate dates.

    Each ``iter()`` walks the window again from ``today``; nothing is cached
    between iterations.
    """

    def __init__(self, play_days, special_play_dates, scheduling_window_months, today):
        self.play_days = frozenset(play_days or [])
        self.special_play_dates = frozenset(_special_date_set(special_play_dates))
        self.scheduling_window_months = scheduling_window_months
        self.today = today

    @property
    def end(self):
        return window_end(self.today, self.scheduling_window_months)

    def __iter__(self):
        if not self.play_days and not self.special_play_dates:
            return
        day = self.today
        end = self.end
        while day < end:
            if day_of_week(day) in self.play_days or day in self.special_play_dates:
                yield day
            day += timedelta(days=1)

    def __contains__(self, day):
        if not self.today <= day < self.end:
            return False
        return day_of_week(day) in self.play_days or day in self.special_play_dates

    def __repr__(self):
        return (
            f'PlayDateWindow(play_days={sorted(self.play_days)}, '
            f'special={len(self.special_play_dates)}, '
            f'months={self.scheduling_window_months}, today={self.today.isoformat()})'
        )


def get_play_dates_in_window(play_days, special_play_dates, scheduling_window_months, today):
    return list(PlayDateWindow(play_days, special_play_dates, scheduling_window_months, today))


def play_dates_for_game(game, today):
    """Build the candidate window straight from a ``Game`` row."""
    return PlayDateWindow(
        game.play_days_list, game.special_play_dates_list,
        game.scheduling_window_months, today,
    )


def today_for_timezone(tzname=None):
    """Current calendar date in ``tzname`` (UTC when unset or unknown)."""
    zone = timezone.utc
    if tzname:
        try:
            zone = ZoneInfo(tzname)
        except (ZoneInfoNotFoundError, ValueError):
            zone = timezone.utc
    return datetime.now(zone).date()
