"""Game CRUD, invite-code joins and roster management."""
import secrets
from flask import Blueprint, request, jsonify, current_app
from gamenight.app import db
from gamenight.models import Game, GameMembership, User
from gamenight.auth_utils import (
    login_required, game_role_required, ROLE_GM, ROLE_MEMBER,
)
from gamenight.services.game_validation import validate_game_payload
from gamenight.services.snapshots import load_roster, roster_size

games_bp = Blueprint('games', __name__)

_INVITE_CODE_BYTES = 8


def _new_invite_code():
    while True:
        code = secrets.token_urlsafe(_INVITE_CODE_BYTES)
        if not Game.query.filter_by(invite_code=code).first():
            return code


def _apply_game_fields(game, cleaned):
    for key in ('name', 'description', 'scheduling_window_months',
                'default_start_time', 'default_end_time', 'timezone'):
        if key in cleaned:
            setattr(game, key, cleaned[key])
    if 'play_days' in cleaned:
        game.play_days_list = cleaned['play_days']
    if 'special_play_dates' in cleaned:
        game.special_play_dates_list = cleaned['special_play_dates']


def _serialize_game_detail(game, role):
    data = game.to_dict()
    data['members'] = [member.to_dict() for member in load_roster(game)]
    data['my_role'] = role
    return data


@games_bp.route('', methods=['POST'])
@login_required
def create_game():
    data = request.get_json(silent=True)
    cleaned, errors = validate_game_payload(data)
    if errors:
        return jsonify({'error': errors[0], 'errors': errors}), 400

    max_games = current_app.config.get('MAX_GAMES_PER_USER', 20)
    owned = Game.query.filter_by(gm_id=request.current_user.id).count()
    if owned >= max_games:
        return jsonify({'error': f'You can run at most {max_games} games'}), 400

    game = Game(gm_id=request.current_user.id, invite_code=_new_invite_code())
    _apply_game_fields(game, cleaned)
    db.session.add(game)
    db.session.commit()
    return jsonify({'game': game.to_dict()}), 201


@games_bp.route('/my', methods=['GET'])
@login_required
def get_my_games():
    """Games the current user runs or plays in."""
    uid = request.current_user.id
    member_ids = [m.game_id for m in GameMembership.query.filter_by(user_id=uid).all()]
    games = Game.query.filter(
        (Game.gm_id == uid) | (Game.id.in_(member_ids))
    ).order_by(Game.created_at.desc(), Game.id.desc()).all()

    results = []
    for game in games:
        game_dict = game.to_dict()
        game_dict['is_gm'] = game.gm_id == uid
        game_dict['player_count'] = roster_size(game)
        results.append(game_dict)
    return jsonify({'games': results})


@games_bp.route('/<int:game_id>', methods=['GET'])
@game_role_required(ROLE_MEMBER)
def get_game(game_id):
    return jsonify({'game': _serialize_game_detail(request.current_game, request.current_role)})


@games_bp.route('/<int:game_id>', methods=['PUT'])
@game_role_required(ROLE_GM)
def update_game(game_id):
    data = request.get_json(silent=True)
    cleaned, errors = validate_game_payload(data, partial=True)
    if errors:
        return jsonify({'error': errors[0], 'errors': errors}), 400

    game = request.current_game
    _apply_game_fields(game, cleaned)
    db.session.commit()
    return jsonify({'game': game.to_dict()})


@games_bp.route('/<int:game_id>', methods=['DELETE'])
@game_role_required(ROLE_GM)
def delete_game(game_id):
    db.session.delete(request.current_game)
    db.session.commit()
    return jsonify({'message': 'Game deleted'})


@games_bp.route('/preview/<code>', methods=['GET'])
def preview_game(code):
    """Public, unauthenticated summary used by invite links."""
    game = Game.query.filter_by(invite_code=code).first()
    if not game:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify({
        'name': game.name,
        'description': game.description,
        'play_days': game.play_days_list,
        'gm_name': game.gm.display_name if game.gm else 'Unknown',
    })


@games_bp.route('/join/<code>', methods=['POST'])
@login_required
def join_game(code):
    game = Game.query.filter_by(invite_code=code).first()
    if not game:
        return jsonify({'error': 'Game not found'}), 404

    uid = request.current_user.id
    if game.gm_id == uid or GameMembership.query.filter_by(game_id=game.id, user_id=uid).first():
        return jsonify({'game': game.to_dict(), 'message': 'Already a member'})

    max_players = current_app.config.get('MAX_PLAYERS_PER_GAME', 50)
    if roster_size(game) >= max_players:
        return jsonify({'error': 'Game is full'}), 400

    db.session.add(GameMembership(game_id=game.id, user_id=uid))
    db.session.commit()
    return jsonify({'game': game.to_dict(), 'message': 'Joined game'}), 201


@games_bp.route('/<int:game_id>/members/<int:user_id>/co-gm', methods=['POST'])
@game_role_required(ROLE_GM)
def toggle_co_gm(game_id, user_id):
    membership = GameMembership.query.filter_by(game_id=game_id, user_id=user_id).first()
    if not membership:
        return jsonify({'error': 'Member not found'}), 404

    data = request.get_json(silent=True) or {}
    if isinstance(data, dict) and 'is_co_gm' in data:
        membership.is_co_gm = bool(data['is_co_gm'])
    else:
        membership.is_co_gm = not membership.is_co_gm
    db.session.commit()
    return jsonify({'membership': membership.to_dict()})


@games_bp.route('/<int:game_id>/members/<int:user_id>', methods=['DELETE'])
@game_role_required(ROLE_MEMBER)
def remove_member(game_id, user_id):
    """GM removes a player, or a player leaves."""
    game = request.current_game
    if user_id == game.gm_id:
        return jsonify({'error': 'The GM cannot leave their own game'}), 400
    if request.current_role != ROLE_GM and user_id != request.current_user.id:
        return jsonify({'error': 'Only the GM can remove other players'}), 403

    membership = GameMembership.query.filter_by(game_id=game_id, user_id=user_id).first()
    if not membership:
        return jsonify({'error': 'Member not found'}), 404

    db.session.delete(membership)
    db.session.commit()
    user = db.session.get(User, user_id)
    name = user.display_name if user else 'Player'
    return jsonify({'message': f'{name} removed from {game.name}'})
