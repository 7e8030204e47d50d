"""Aggregate member availability into per-date scheduling suggestions.

Inputs are snapshots (roster + availability rows) that the caller already
fetched; nothing here touches the database.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional

from gamenight.services.availability_status import PlayerState, player_state
from gamenight.services.formatting import day_of_week, serialize_time
from gamenight.services.play_dates import parse_iso_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RosterMember:
    user_id: int
    name: str = ''
    is_gm: bool = False
    is_co_gm: bool = False
    profile: dict = field(default_factory=dict, compare=False, hash=False)

    def to_dict(self):
        data = dict(self.profile)
        data.update({
            'id': self.user_id, 'name': self.name,
            'is_gm': self.is_gm, 'is_co_gm': self.is_co_gm,
        })
        return data


@dataclass
class PlayerWithComment:
    member: RosterMember
    comment: Optional[str] = None
    available_after: Optional[time] = None
    available_until: Optional[time] = None

    def to_dict(self):
        return {
            'user': self.member.to_dict(),
            'comment': self.comment,
            'available_after': serialize_time(self.available_after),
            'available_until': serialize_time(self.available_until),
        }


@dataclass
class CategorizedPlayers:
    available: list = field(default_factory=list)
    maybe: list = field(default_factory=list)
    unavailable: list = field(default_factory=list)
    pending: list = field(default_factory=list)


@dataclass
class DateSuggestion:
    date: date
    day_of_week: int
    available_count: int
    maybe_count: int
    unavailable_count: int
    pending_count: int
    total_players: int
    available_players: list
    maybe_players: list
    unavailable_players: list
    pending_players: list

    def to_dict(self):
        return {
            'date': self.date.isoformat(),
            'day_of_week': self.day_of_week,
            'available_count': self.available_count,
            'maybe_count': self.maybe_count,
            'unavailable_count': self.unavailable_count,
            'pending_count': self.pending_count,
            'total_players': self.total_players,
            'available_players': [p.to_dict() for p in self.available_players],
            'maybe_players': [p.to_dict() for p in self.maybe_players],
            'unavailable_players': [p.to_dict() for p in self.unavailable_players],
            'pending_players': [m.to_dict() for m in self.pending_players],
        }


def _row_value(row, name):
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)


def index_availability(rows):
    """Index availability rows by ``(user_id, date)``.

    Malformed rows are skipped with a warning. Later rows win for a
    duplicated key, matching last-write-wins upserts.
    """
    index = {}
    for row in rows or []:
        try:
            key = (_row_value(row, 'user_id'), parse_iso_date(_row_value(row, 'date')))
            player_state(row)
        except (TypeError, ValueError):
            logger.warning('Skipping malformed availability row: %r', row)
            continue
        index[key] = row
    return index


def _roster_order(roster):
    return sorted(roster, key=lambda m: ((m.name or '').casefold(), m.user_id))


def categorize_players(roster, availability_index, day):
    """Split the roster by their entry for ``day``."""
    result = CategorizedPlayers()
    for member in _roster_order(roster):
        entry = availability_index.get((member.user_id, day))
        state = player_state(entry)
        if state is PlayerState.PENDING:
            result.pending.append(member)
            continue
        player = PlayerWithComment(
            member=member,
            comment=_row_value(entry, 'comment'),
            available_after=_row_value(entry, 'available_after'),
            available_until=_row_value(entry, 'available_until'),
        )
        if state is PlayerState.AVAILABLE:
            result.available.append(player)
        elif state is PlayerState.MAYBE:
            result.maybe.append(player)
        else:
            result.unavailable.append(player)
    return result


def build_date_suggestion(day, roster, availability_index):
    groups = categorize_players(roster, availability_index, day)
    return DateSuggestion(
        date=day,
        day_of_week=day_of_week(day),
        available_count=len(groups.available),
        maybe_count=len(groups.maybe),
        unavailable_count=len(groups.unavailable),
        pending_count=len(groups.pending),
        total_players=len(roster),
        available_players=groups.available,
        maybe_players=groups.maybe,
        unavailable_players=groups.unavailable,
        pending_players=groups.pending,
    )


def calculate_date_suggestions(play_dates, roster, availability):
    """One ``DateSuggestion`` per candidate date, in candidate order.

    ``availability`` may be raw rows or an index from ``index_availability``.
    Rows for users outside the roster are ignored.
    """
    roster = list(roster)
    if isinstance(availability, dict):
        availability_index = availability
    else:
        availability_index = index_availability(availability)

    roster_ids = {m.user_id for m in roster}
    orphaned = sum(1 for user_id, _ in availability_index if user_id not in roster_ids)
    if orphaned:
        logger.debug('Ignoring %d availability rows for users outside the roster', orphaned)

    return [build_date_suggestion(day, roster, availability_index) for day in play_dates]


def suggestion_rank_key(suggestion):
    """Sort key: most available, most maybe, fewest pending, then earliest date."""
    return (
        -suggestion.available_count, -suggestion.maybe_count,
        suggestion.pending_count, suggestion.date,
    )


def rank_suggestions(suggestions, key=suggestion_rank_key):
    return sorted(suggestions, key=key)
