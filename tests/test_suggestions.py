"""Tests for availability aggregation and suggestion ranking."""
from datetime import date, time

from gamenight.services.suggestions import (
    RosterMember, calculate_date_suggestions, categorize_players,
    index_availability, rank_suggestions, suggestion_rank_key,
)

FRI = date(2025, 12, 5)
SAT = date(2025, 12, 6)

ALICE = RosterMember(user_id=1, name='Alice', is_gm=True)
BOB = RosterMember(user_id=2, name='Bob')
CARA = RosterMember(user_id=3, name='Cara', is_co_gm=True)
ROSTER = [CARA, ALICE, BOB]


def _row(user_id, day, status, comment=None, **extra):
    return {'user_id': user_id, 'date': day, 'status': status, 'comment': comment, **extra}


def test_three_player_scenario():
    rows = [_row(1, FRI, 'available'), _row(2, FRI, 'maybe', 'might be late')]
    [suggestion] = calculate_date_suggestions([FRI], ROSTER, rows)
    assert suggestion.available_count == 1
    assert suggestion.maybe_count == 1
    assert suggestion.unavailable_count == 0
    assert suggestion.pending_count == 1
    assert suggestion.total_players == 3
    assert suggestion.day_of_week == 5
    assert suggestion.maybe_players[0].comment == 'might be late'
    assert suggestion.pending_players == [CARA]


def test_counts_sum_and_lists_partition_roster():
    rows = [
        _row(1, FRI, 'available'), _row(2, FRI, 'unavailable'),
        _row(3, SAT, 'maybe'), _row(2, SAT, 'available'),
    ]
    for s in calculate_date_suggestions([FRI, SAT], ROSTER, rows):
        total = s.available_count + s.maybe_count + s.unavailable_count + s.pending_count
        assert total == s.total_players
        ids = (
            [p.member.user_id for p in s.available_players]
            + [p.member.user_id for p in s.maybe_players]
            + [p.member.user_id for p in s.unavailable_players]
            + [m.user_id for m in s.pending_players]
        )
        assert sorted(ids) == [1, 2, 3]


def test_empty_roster_gives_zero_counts():
    [s] = calculate_date_suggestions([FRI], [], [_row(1, FRI, 'available')])
    assert (s.available_count, s.maybe_count, s.unavailable_count, s.pending_count) == (0, 0, 0, 0)
    assert s.total_players == 0
    assert s.available_players == []


def test_players_ordered_by_name_then_id():
    roster = [
        RosterMember(user_id=9, name='zed'),
        RosterMember(user_id=5, name='Amy'),
        RosterMember(user_id=4, name='Amy'),
    ]
    groups = categorize_players(roster, {}, FRI)
    assert [m.user_id for m in groups.pending] == [4, 5, 9]


def test_orphaned_and_malformed_rows_are_skipped():
    rows = [
        _row(99, FRI, 'available'),
        _row(1, FRI, 'sometimes'),
        {'user_id': 2, 'date': 'garbage', 'status': 'available'},
        _row(2, FRI, 'available'),
    ]
    [s] = calculate_date_suggestions([FRI], ROSTER, rows)
    assert [p.member.user_id for p in s.available_players] == [2]
    assert s.pending_count == 2


def test_time_window_is_carried_to_player_entry():
    rows = [_row(1, FRI, 'available', available_after=time(20, 0))]
    [s] = calculate_date_suggestions([FRI], ROSTER, rows)
    payload = s.to_dict()
    assert payload['available_players'][0]['available_after'] == '20:00:00'
    assert payload['date'] == '2025-12-05'


def test_index_uses_last_row_for_duplicate_key():
    index = index_availability([_row(1, FRI, 'maybe'), _row(1, FRI, 'available')])
    assert index[(1, FRI)]['status'] == 'available'


def test_suggestions_follow_candidate_order_until_ranked():
    rows = [_row(1, SAT, 'available'), _row(2, SAT, 'available'), _row(3, FRI, 'maybe')]
    suggestions = calculate_date_suggestions([FRI, SAT], ROSTER, rows)
    assert [s.date for s in suggestions] == [FRI, SAT]
    assert [s.date for s in rank_suggestions(suggestions)] == [SAT, FRI]


def test_rank_ties_break_on_maybe_then_date():
    later = date(2025, 12, 12)
    rows = [
        _row(1, FRI, 'available'),
        _row(1, SAT, 'available'), _row(2, SAT, 'maybe'),
        _row(1, later, 'available'),
    ]
    suggestions = calculate_date_suggestions([later, FRI, SAT], ROSTER, rows)
    ranked = sorted(suggestions, key=suggestion_rank_key)
    assert [s.date for s in ranked] == [SAT, FRI, later]


def test_rank_prefers_fewer_pending_before_earlier_date():
    rows = [
        _row(1, FRI, 'available'),
        _row(1, SAT, 'available'), _row(2, SAT, 'unavailable'),
    ]
    ranked = rank_suggestions(calculate_date_suggestions([FRI, SAT], ROSTER, rows))
    assert [(s.date, s.pending_count) for s in ranked] == [(SAT, 1), (FRI, 2)]
