"""Confirmed game sessions: confirm a suggested date, list, cancel."""
from flask import Blueprint, request, jsonify
from gamenight.app import db
from gamenight.models import GameSession
from gamenight.auth_utils import game_role_required, ROLE_CO_GM, ROLE_MEMBER
from gamenight.services.formatting import format_time_range, parse_time
from gamenight.services.play_dates import parse_iso_date
from gamenight.services.snapshots import load_confirmed_sessions

sessions_bp = Blueprint('sessions', __name__)


def _serialize_session(session, game):
    data = session.to_dict()
    data['time_label'] = format_time_range(
        session.start_time or game.default_start_time,
        session.end_time or game.default_end_time,
    )
    return data


@sessions_bp.route('/<int:game_id>/sessions', methods=['GET'])
@game_role_required(ROLE_MEMBER)
def list_sessions(game_id):
    game = request.current_game
    return jsonify({
        'sessions': [_serialize_session(s, game) for s in load_confirmed_sessions(game)],
    })


@sessions_bp.route('/<int:game_id>/sessions', methods=['POST'])
@game_role_required(ROLE_CO_GM)
def confirm_session(game_id):
    """Confirm a date as a session (GM or co-GM)."""
    game = request.current_game
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400

    try:
        day = parse_iso_date(data.get('date'))
    except (TypeError, ValueError):
        return jsonify({'error': 'A valid date (YYYY-MM-DD) is required'}), 400

    times = {}
    for key in ('start_time', 'end_time'):
        raw = data.get(key)
        try:
            times[key] = parse_time(raw) if raw not in (None, '') else None
        except ValueError:
            return jsonify({'error': f'Invalid {key.replace("_", " ")}'}), 400

    existing = GameSession.query.filter_by(
        game_id=game.id, date=day, status='confirmed'
    ).first()
    if existing:
        return jsonify({'error': 'A session is already confirmed for that date'}), 409

    session = GameSession(
        game_id=game.id, date=day,
        start_time=times['start_time'], end_time=times['end_time'],
        status='confirmed', confirmed_by=request.current_user.id,
    )
    db.session.add(session)
    db.session.commit()
    return jsonify({'session': _serialize_session(session, game)}), 201


@sessions_bp.route('/<int:game_id>/sessions/<int:session_id>', methods=['DELETE'])
@game_role_required(ROLE_CO_GM)
def cancel_session(game_id, session_id):
    session = GameSession.query.filter_by(id=session_id, game_id=game_id).first()
    if not session:
        return jsonify({'error': 'Session not found'}), 404
    db.session.delete(session)
    db.session.commit()
    return jsonify({'message': 'Session cancelled'})
