"""Availability entries, bulk marking, completion and date suggestions."""
import logging
from flask import Blueprint, request, jsonify
from sqlalchemy.exc import IntegrityError
from gamenight.app import db
from gamenight.models import Availability
from gamenight.auth_utils import game_role_required, ROLE_MEMBER
from gamenight.services.availability_status import coerce_status, next_status
from gamenight.services.bulk_availability import filter_dates_for_bulk_set
from gamenight.services.completion import calculate_player_completion
from gamenight.services.formatting import parse_time
from gamenight.services.play_dates import (
    parse_iso_date, play_dates_for_game, today_for_timezone,
)
from gamenight.services.snapshots import load_availability, load_roster
from gamenight.services.suggestions import calculate_date_suggestions, rank_suggestions

logger = logging.getLogger(__name__)

availability_bp = Blueprint('availability', __name__)

_CLEAR_STATUSES = {None, '', 'pending', 'clear'}
_MAX_COMMENT_LENGTH = 500


def _reference_today(game):
    raw = request.args.get('today')
    if raw:
        return parse_iso_date(raw)
    return today_for_timezone(game.timezone)


def _parse_entry_date(data, game):
    """Return ``(date, error)`` for a write targeting one of the game's dates."""
    try:
        day = parse_iso_date(data.get('date'))
    except (TypeError, ValueError):
        return None, 'A valid date (YYYY-MM-DD) is required'
    window = play_dates_for_game(game, today_for_timezone(game.timezone))
    if day not in window:
        return None, 'That date is not an upcoming play date for this game'
    return day, None


def _upsert_entry(game_id, user_id, day, status, **fields):
    """Insert or overwrite the (user, game, date) entry; last write wins."""
    for attempt in range(2):
        entry = Availability.query.filter_by(
            game_id=game_id, user_id=user_id, date=day
        ).first()
        if entry is None:
            entry = Availability(game_id=game_id, user_id=user_id, date=day, status=status)
            db.session.add(entry)
        entry.status = status
        for key, value in fields.items():
            setattr(entry, key, value)
        try:
            db.session.commit()
            return entry
        except IntegrityError:
            db.session.rollback()
            if attempt:
                raise
            logger.info('Concurrent availability insert for user %s on %s, retrying',
                        user_id, day)
    return None


@availability_bp.route('/<int:game_id>/availability', methods=['GET'])
@game_role_required(ROLE_MEMBER)
def get_availability(game_id):
    game = request.current_game
    try:
        today = _reference_today(game)
    except ValueError:
        return jsonify({'error': 'Invalid today parameter'}), 400

    user_id = request.args.get('user_id', type=int)
    rows = load_availability(game, user_id=user_id)
    return jsonify({
        'availability': [row.to_dict() for row in rows],
        'play_dates': [d.isoformat() for d in play_dates_for_game(game, today)],
    })


@availability_bp.route('/<int:game_id>/availability/cycle', methods=['POST'])
@game_role_required(ROLE_MEMBER)
def cycle_availability(game_id):
    """Advance the caller's status for one date through the status cycle."""
    game = request.current_game
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400
    day, error = _parse_entry_date(data, game)
    if error:
        return jsonify({'error': error}), 400

    uid = request.current_user.id
    current = Availability.query.filter_by(game_id=game.id, user_id=uid, date=day).first()
    try:
        status = next_status(current)
    except ValueError:
        logger.warning('Resetting unknown stored status %r for availability %s',
                       current.status, current.id)
        status = next_status(None)

    entry = _upsert_entry(game.id, uid, day, status.value)
    return jsonify({'availability': entry.to_dict()})


@availability_bp.route('/<int:game_id>/availability', methods=['PUT'])
@game_role_required(ROLE_MEMBER)
def set_availability(game_id):
    """Set status, comment and time window explicitly, or clear the entry."""
    game = request.current_game
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400
    day, error = _parse_entry_date(data, game)
    if error:
        return jsonify({'error': error}), 400

    uid = request.current_user.id
    raw_status = data.get('status')
    if raw_status in _CLEAR_STATUSES:
        entry = Availability.query.filter_by(game_id=game.id, user_id=uid, date=day).first()
        if entry:
            db.session.delete(entry)
            db.session.commit()
        return jsonify({'availability': None, 'date': day.isoformat()})

    try:
        status = coerce_status(raw_status)
    except ValueError:
        return jsonify({'error': f'Invalid status: {raw_status}'}), 400

    fields = {}
    if 'comment' in data:
        comment = str(data.get('comment') or '').strip()[:_MAX_COMMENT_LENGTH]
        fields['comment'] = comment or None
    for key in ('available_after', 'available_until'):
        if key not in data:
            continue
        raw = data.get(key)
        try:
            fields[key] = parse_time(raw) if raw not in (None, '') else None
        except ValueError:
            return jsonify({'error': f'Invalid {key.replace("_", " ")}'}), 400

    after, until = fields.get('available_after'), fields.get('available_until')
    if after and until and until <= after:
        return jsonify({'error': 'Available until must be later than available after'}), 400

    entry = _upsert_entry(game.id, uid, day, status.value, **fields)
    return jsonify({'availability': entry.to_dict()})


@availability_bp.route('/<int:game_id>/availability/bulk', methods=['POST'])
@game_role_required(ROLE_MEMBER)
def bulk_set_availability(game_id):
    """Mark every remaining date, or every date on one weekday, at once."""
    game = request.current_game
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400

    try:
        status = coerce_status(data.get('status'))
    except ValueError:
        return jsonify({'error': 'A valid status is required'}), 400

    uid = request.current_user.id
    today = today_for_timezone(game.timezone)
    window_dates = list(play_dates_for_game(game, today))
    for attempt in range(2):
        existing_rows = {row.date: row for row in load_availability(game, user_id=uid)}
        try:
            selected = filter_dates_for_bulk_set(
                data.get('filter', 'remaining'), window_dates,
                game.play_days_list, game.special_play_dates_list,
                existing_rows.keys(), today,
            )
        except ValueError as exc:
            return jsonify({'error': str(exc)}), 400

        for day in selected:
            entry = existing_rows.get(day)
            if entry is None:
                db.session.add(Availability(game_id=game.id, user_id=uid, date=day,
                                            status=status.value))
            else:
                entry.status = status.value
        try:
            db.session.commit()
            break
        except IntegrityError:
            db.session.rollback()
            if attempt:
                raise
            logger.info('Concurrent availability insert during bulk set for user %s, retrying',
                        uid)
    return jsonify({
        'updated_count': len(selected),
        'dates': [d.isoformat() for d in selected],
        'status': status.value,
    })


@availability_bp.route('/<int:game_id>/completion', methods=['GET'])
@game_role_required(ROLE_MEMBER)
def get_completion(game_id):
    game = request.current_game
    try:
        today = _reference_today(game)
    except ValueError:
        return jsonify({'error': 'Invalid today parameter'}), 400

    roster = load_roster(game)
    percentages = calculate_player_completion(
        [m.user_id for m in roster],
        list(play_dates_for_game(game, today)),
        load_availability(game),
    )
    return jsonify({'completion': {str(k): v for k, v in percentages.items()}})


@availability_bp.route('/<int:game_id>/suggestions', methods=['GET'])
@game_role_required(ROLE_MEMBER)
def get_suggestions(game_id):
    """Per-date availability summary, ranked best-first unless ``sort=date``."""
    game = request.current_game
    try:
        today = _reference_today(game)
    except ValueError:
        return jsonify({'error': 'Invalid today parameter'}), 400

    suggestions = calculate_date_suggestions(
        play_dates_for_game(game, today), load_roster(game), load_availability(game),
    )
    if request.args.get('sort', 'rank') != 'date':
        suggestions = rank_suggestions(suggestions)
    return jsonify({
        'today': today.isoformat(),
        'suggestions': [s.to_dict() for s in suggestions],
    })
